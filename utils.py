"""
Utils module - small helpers shared by the models, services and routes.
"""
import hashlib
import hmac
import json
import logging
import re
import secrets
import time

from werkzeug.utils import secure_filename

from config import SECRET_KEY, MAX_FILENAME_LENGTH

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def now_ms():
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def normalize_email(email):
    """Lower-case and trim an email address."""
    if not email:
        return ''
    return str(email).strip().lower()


def is_valid_email(email):
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def hash_code(code):
    """
    Hash a one-time code with a keyed one-way function so stored hashes
    cannot be reversed or brute forced without the secret key.
    """
    return hmac.new(SECRET_KEY.encode(), str(code).encode(), hashlib.sha256).hexdigest()


def generate_otp():
    """Six digit numeric code, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


def json_parse_safe(value, fallback):
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return fallback


def safe_upload_name(original_name, timestamp_ms):
    """Build the stored name for an upload: ``<epoch-ms>-<sanitized name>``."""
    name = secure_filename(original_name or '') or 'file'
    return f"{timestamp_ms}-{name[:MAX_FILENAME_LENGTH]}"


def allowed_file(filename, extensions):
    """Check if file has an allowed extension."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in extensions
