"""
Submission gates.

``HeaderTrustGate`` accepts whatever email the client puts in the request
header. ``OtpGate`` additionally requires that the email's most recent
one-time code was verified and has not expired yet.
"""

import hmac
import logging

import config
from csat.errors import AuthorizationError, RateLimitError, ValidationError
from csat.models.otp import OtpCode
from csat.services.mailer import Mailer, dispatch
from utils import generate_otp, hash_code, is_valid_email, normalize_email, now_ms

logger = logging.getLogger(__name__)

WINDOW_MS = 60 * 60 * 1000


class HeaderTrustGate:
    name = 'header'

    def identify(self, raw_email):
        """Normalize the claimed email or reject the request."""
        email = normalize_email(raw_email)
        if not email:
            raise AuthorizationError("Missing X-Email header")
        if not is_valid_email(email):
            raise AuthorizationError("Invalid email in X-Email header")
        return email

    def authorize(self, raw_email):
        return self.identify(raw_email)


class OtpGate(HeaderTrustGate):
    name = 'otp'

    def __init__(self, mailer=None, ttl_minutes=None, max_per_hour=None, max_attempts=None,
                 clock=now_ms, send=dispatch):
        self.mailer = mailer or Mailer()
        self.ttl_minutes = ttl_minutes or config.OTP_TTL_MINUTES
        self.max_per_hour = max_per_hour or config.OTP_MAX_PER_HOUR
        self.max_attempts = max_attempts or config.OTP_MAX_ATTEMPTS
        self.clock = clock
        self.send = send

    def _require_email(self, raw_email):
        email = normalize_email(raw_email)
        if not is_valid_email(email):
            raise ValidationError("A valid email is required")
        return email

    def request_code(self, raw_email):
        email = self._require_email(raw_email)
        now = self.clock()
        code = generate_otp()

        record_id = OtpCode.issue(
            email,
            hash_code(code),
            created_at=now,
            expires_at=now + self.ttl_minutes * 60 * 1000,
            window_start=now - WINDOW_MS,
            max_in_window=self.max_per_hour,
        )
        if record_id is None:
            logger.warning(f"OTP rate limit reached for {email}")
            raise RateLimitError("Too many codes requested. Please try again later.")

        # the response does not wait for delivery
        self.send(self.mailer.send_otp, email, code, self.ttl_minutes)
        logger.info(f"OTP issued for {email}")
        return {'ok': True, 'message': f"A verification code was sent to {email}"}

    def verify_code(self, raw_email, code):
        email = self._require_email(raw_email)
        now = self.clock()

        record = OtpCode.latest(email)
        if not record:
            raise ValidationError("No code was requested for this email")
        if now >= record['expires_at']:
            raise ValidationError("The code has expired. Please request a new one.")
        if record['verified_at'] is not None:
            return {'ok': True, 'message': "Email already verified"}

        supplied = hash_code(str(code or '').strip())
        outcome = OtpCode.attempt(
            record['id'],
            self.max_attempts,
            matches=lambda stored: hmac.compare_digest(stored, supplied),
            verified_at=now,
        )

        if outcome == 'exhausted':
            logger.warning(f"OTP attempts exhausted for {email}")
            raise RateLimitError("Too many attempts. Please request a new code.")
        if outcome == 'mismatch':
            raise ValidationError("Invalid code")

        logger.info(f"Email verified: {email}")
        return {'ok': True, 'message': "Email verified"}

    def is_verified(self, email):
        record = OtpCode.latest(email)
        return bool(
            record
            and record['verified_at'] is not None
            and self.clock() < record['expires_at']
        )

    def authorize(self, raw_email):
        email = self.identify(raw_email)
        if not self.is_verified(email):
            raise AuthorizationError("Email is not verified. Please verify your email with the code we sent.")
        return email


def build_gate(mode=None, **kwargs):
    mode = (mode or config.VERIFICATION_MODE).lower()
    if mode == 'header':
        return HeaderTrustGate()
    if mode == 'otp':
        return OtpGate(**kwargs)
    raise ValueError(f"Unknown verification mode: {mode}")
