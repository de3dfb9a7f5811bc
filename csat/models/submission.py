import json
import logging
import sqlite3

from .database import get_db
from csat.errors import ConflictError
from utils import json_parse_safe

logger = logging.getLogger(__name__)


def _row_to_dict(row, with_answers=False):
    item = {
        'id': row['id'],
        'email': row['email'],
        'created_at': row['created_at'],
        'meta': json_parse_safe(row['meta_json'], {}),
        'scores': json_parse_safe(row['scores_json'], {}),
        'remark': row['remark_text'] or '',
        'file_path': row['file_path'] or None,
    }
    if with_answers:
        item['answers'] = json_parse_safe(row['answers_json'], [])
    return item


class Submission:
    @staticmethod
    def create(email, meta, answers, scores, remark, file_path, created_at):
        """Insert a submission and return its id.

        The UNIQUE index on email makes the duplicate check and the insert a
        single atomic statement.
        """
        try:
            with get_db() as conn:
                cursor = conn.cursor()
                cursor.execute('''
                    INSERT INTO submissions
                    (email, meta_json, answers_json, scores_json, remark_text, file_path, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (
                    email,
                    json.dumps(meta or {}),
                    json.dumps(answers or []),
                    json.dumps(scores),
                    remark or None,
                    file_path,
                    created_at,
                ))
                return cursor.lastrowid
        except sqlite3.IntegrityError:
            logger.info(f"Duplicate submission rejected for {email}")
            raise ConflictError("A survey has already been submitted for this email")

    @staticmethod
    def get(submission_id):
        """Get a submission with its raw answers, or None."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT * FROM submissions WHERE id = ?', (submission_id,))
            row = cursor.fetchone()
            return _row_to_dict(row, with_answers=True) if row else None

    @staticmethod
    def list_recent(limit=500, with_answers=False):
        """Most recent submissions first."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT * FROM submissions
                ORDER BY created_at DESC, id DESC
                LIMIT ?
            ''', (limit,))
            return [_row_to_dict(row, with_answers) for row in cursor.fetchall()]

    @staticmethod
    def score_series():
        """Per-submission scores in ascending time order."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT scores_json, created_at FROM submissions
                ORDER BY created_at ASC, id ASC
            ''')
            series = []
            for row in cursor.fetchall():
                scores = json_parse_safe(row['scores_json'], {})
                series.append({
                    't': row['created_at'],
                    'overall': scores.get('overall') or 0,
                    'onboard': scores.get('onboard') or 0,
                    'ashore': scores.get('ashore') or 0,
                })
            return series

    @staticmethod
    def exists_for_email(email):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT 1 FROM submissions WHERE email = ?', (email,))
            return cursor.fetchone() is not None

    @staticmethod
    def delete(submission_id):
        """Delete a submission.

        Returns the deleted row's id and file_path so the caller can remove the
        attachment, or None if nothing was deleted.
        """
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT id, file_path FROM submissions WHERE id = ?', (submission_id,))
            row = cursor.fetchone()
            if not row:
                return None
            cursor.execute('DELETE FROM submissions WHERE id = ?', (submission_id,))
            return {'id': row['id'], 'file_path': row['file_path']}

    @staticmethod
    def count():
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT COUNT(*) FROM submissions')
            return cursor.fetchone()[0]

    @staticmethod
    def all_scores():
        """Every stored score report with its timestamp, oldest first."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT id, created_at, scores_json FROM submissions
                ORDER BY created_at ASC, id ASC
            ''')
            return [
                {
                    'id': row['id'],
                    'created_at': row['created_at'],
                    'scores': json_parse_safe(row['scores_json'], {}),
                }
                for row in cursor.fetchall()
            ]
