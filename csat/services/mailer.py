"""
Outgoing mail: OTP codes and new-submission notices.

Messages are handed to a background thread; a failed delivery is logged and
never reaches the HTTP caller.
"""

import html
import logging
import smtplib
import ssl
import threading
from datetime import datetime
from email.message import EmailMessage

import config

logger = logging.getLogger(__name__)


def _otp_html(brand, code, ttl):
    brand = html.escape(brand)
    code = html.escape(code)
    year = datetime.now().year
    font = "-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial"
    return f"""
  <div style="margin:0;padding:0;background:#f6f7fb;">
    <table role="presentation" cellpadding="0" cellspacing="0" border="0" width="100%" style="background:#f6f7fb;">
      <tr>
        <td align="center" style="padding:28px 14px;">
          <div style="display:none;max-height:0;overflow:hidden;opacity:0;color:transparent;">
            Your one-time code is {code}. Expires in {ttl} minutes.
          </div>
          <table role="presentation" cellpadding="0" cellspacing="0" border="0" width="560"
            style="width:560px;max-width:560px;background:#ffffff;border:1px solid #e9edf5;border-radius:18px;">
            <tr>
              <td style="padding:18px 20px;border-bottom:1px solid #eef2f7;background:#fbfcff;font-family:{font};color:#0f172a;">
                <div style="font-size:14px;font-weight:700;">{brand}</div>
                <div style="font-size:20px;font-weight:800;margin-top:6px;">Verify your email</div>
                <div style="font-size:13px;color:#64748b;margin-top:6px;">
                  Use the one-time password (OTP) below. It expires in <b>{ttl} minutes</b>.
                </div>
              </td>
            </tr>
            <tr>
              <td align="center" style="padding:20px;font-family:{font};font-size:34px;font-weight:900;letter-spacing:0.22em;color:#0f172a;">
                {code}
              </td>
            </tr>
            <tr>
              <td style="padding:14px 20px;border-top:1px solid #eef2f7;font-family:{font};color:#94a3b8;font-size:11px;">
                If you didn't request this OTP, you can safely ignore this email.<br>
                &copy; {year} {brand}. This is an automated message.
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </div>"""


class Mailer:
    def __init__(self, host=None, port=None, user=None, password=None, secure=None,
                 sender=None, brand=None):
        self.host = config.SMTP_HOST if host is None else host
        self.port = config.SMTP_PORT if port is None else port
        self.user = config.SMTP_USER if user is None else user
        self.password = config.SMTP_PASS if password is None else password
        # port 465 is implicit TLS, anything else upgrades with STARTTLS
        self.secure = (self.port == 465 or config.SMTP_SECURE) if secure is None else secure
        self.sender = sender or config.SMTP_FROM
        self.brand = brand or config.APP_NAME

    @property
    def configured(self):
        return bool(self.host)

    def send(self, to, subject, text, html_body=None):
        if not self.configured:
            logger.warning(f"SMTP is not configured; mail to {to} was not sent")
            return False

        message = EmailMessage()
        message['From'] = self.sender
        message['To'] = to
        message['Subject'] = subject
        message.set_content(text)
        if html_body:
            message.add_alternative(html_body, subtype='html')

        context = ssl.create_default_context()
        if self.secure:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=config.SMTP_TIMEOUT, context=context)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=config.SMTP_TIMEOUT)
        with smtp:
            if not self.secure:
                smtp.starttls(context=context)
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(message)
        logger.info(f"Mail delivered to {to}")
        return True

    def send_otp(self, to, code, ttl_minutes):
        subject = f"{self.brand} OTP - {code}"
        text = (
            f"{self.brand} verification code: {code}\n\n"
            f"This OTP expires in {ttl_minutes} minutes.\n"
            "If you didn't request it, ignore this email."
        )
        return self.send(to, subject, text, _otp_html(self.brand, code, ttl_minutes))

    def send_submission_notice(self, to, submission_id, email, scores):
        subject = f"{self.brand}: new survey #{submission_id}"
        text = (
            f"A new survey was submitted by {email}.\n\n"
            f"Overall: {scores.get('overall', 0):.2f}%\n"
            f"Onboard: {scores.get('onboard', 0):.2f}%\n"
            f"Ashore:  {scores.get('ashore', 0):.2f}%\n"
        )
        return self.send(to, subject, text)


def dispatch(func, *args, **kwargs):
    """Run a mail call on a daemon thread; errors are logged and dropped."""
    def runner():
        try:
            func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Mail delivery failed: {e}")

    thread = threading.Thread(target=runner, daemon=True)
    thread.start()
    return thread
