import logging

from .database import get_db

logger = logging.getLogger(__name__)

_COLUMNS = 'id, email, code_hash, created_at, expires_at, verified_at, attempts'


class OtpCode:
    @staticmethod
    def issue(email, code_hash, created_at, expires_at, window_start, max_in_window):
        """Store a new code unless the email already used up its window.

        The count and the insert run as one statement, so concurrent requests
        cannot both slip under the limit. Returns the new id, or None when the
        limit was hit.
        """
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO otp_codes (email, code_hash, created_at, expires_at, attempts)
                SELECT ?, ?, ?, ?, 0
                WHERE (
                    SELECT COUNT(*) FROM otp_codes
                    WHERE email = ? AND created_at > ?
                ) < ?
            ''', (email, code_hash, created_at, expires_at, email, window_start, max_in_window))
            if cursor.rowcount == 0:
                return None
            return cursor.lastrowid

    @staticmethod
    def latest(email):
        """Most recent record for an email as a dict, or None."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'''
                SELECT {_COLUMNS} FROM otp_codes
                WHERE email = ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
            ''', (email,))
            row = cursor.fetchone()
            return dict(row) if row else None

    @staticmethod
    def get(record_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {_COLUMNS} FROM otp_codes WHERE id = ?', (record_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

    @staticmethod
    def attempt(record_id, max_attempts, matches, verified_at):
        """Consume one attempt and, if ``matches(code_hash)``, mark verified.

        The increment takes the write lock before the comparison runs, so the
        counter and the verification are decided inside a single transaction.
        Returns "exhausted", "verified" or "mismatch".
        """
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                UPDATE otp_codes SET attempts = attempts + 1
                WHERE id = ? AND attempts < ? AND verified_at IS NULL
            ''', (record_id, max_attempts))
            if cursor.rowcount == 0:
                cursor.execute('SELECT verified_at FROM otp_codes WHERE id = ?', (record_id,))
                row = cursor.fetchone()
                if row and row['verified_at'] is not None:
                    return 'verified'
                return 'exhausted'

            cursor.execute('SELECT code_hash FROM otp_codes WHERE id = ?', (record_id,))
            code_hash = cursor.fetchone()['code_hash']
            if not matches(code_hash):
                return 'mismatch'

            cursor.execute('''
                UPDATE otp_codes SET verified_at = ?
                WHERE id = ? AND verified_at IS NULL
            ''', (verified_at, record_id))
            return 'verified'
