"""
Admin authentication: static credentials exchanged for a signed JWT.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request

from config import JWT_ALGORITHM
from csat.errors import AuthorizationError

logger = logging.getLogger(__name__)


def check_credentials(email, password, admin_email, admin_password):
    """Constant-time comparison against the configured admin account."""
    email_ok = hmac.compare_digest(
        (email or '').strip().lower().encode(), (admin_email or '').strip().lower().encode()
    )
    password_ok = hmac.compare_digest((password or '').encode(), (admin_password or '').encode())
    return email_ok and password_ok


def issue_token(email, secret, expiry_days, now=None):
    now = now or datetime.now(timezone.utc)
    payload = {
        'role': 'admin',
        'email': email,
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(days=expiry_days)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token, secret):
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthorizationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        raise AuthorizationError("Invalid token")

    if payload.get('role') != 'admin':
        raise AuthorizationError("Invalid token")
    return payload


def admin_required(view):
    """Require a valid ``Authorization: Bearer <token>`` header."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        header = request.headers.get('Authorization', '')
        token = header[7:].strip() if header.startswith('Bearer ') else ''
        if not token:
            raise AuthorizationError("Missing token")
        g.admin = decode_token(token, current_app.config['JWT_SECRET'])
        return view(*args, **kwargs)
    return wrapper
