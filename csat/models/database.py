import sqlite3
import os
from contextlib import contextmanager
import logging

from config import DATABASE_PATH as _DEFAULT_DATABASE_PATH

logger = logging.getLogger(__name__)

DATABASE_PATH = _DEFAULT_DATABASE_PATH


def set_db_path(path):
    """Point every subsequent connection at another database file."""
    global DATABASE_PATH
    DATABASE_PATH = path


def get_db_path():
    """Get the database path and ensure the directory exists."""
    db_dir = os.path.dirname(DATABASE_PATH)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)
    return DATABASE_PATH


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = None
    try:
        conn = sqlite3.connect(get_db_path())
        conn.row_factory = sqlite3.Row
        yield conn
        conn.commit()
    except Exception as e:
        if conn:
            conn.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn:
            conn.close()


def _ensure_column(cursor, table, column, ddl):
    cursor.execute(f'PRAGMA table_info({table})')
    if column not in {row[1] for row in cursor.fetchall()}:
        cursor.execute(f'ALTER TABLE {table} ADD COLUMN {column} {ddl}')
        logger.info(f"Added column {table}.{column}")


def init_db():
    """Initialize the database with all required tables."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('PRAGMA journal_mode = WAL')

        # Survey submissions, one per email
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS submissions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL,
                meta_json TEXT NOT NULL,
                answers_json TEXT NOT NULL,
                scores_json TEXT NOT NULL,
                remark_text TEXT,
                file_path TEXT,
                created_at INTEGER NOT NULL
            )
        ''')

        # Databases created before remarks and attachments existed
        _ensure_column(cursor, 'submissions', 'remark_text', 'TEXT')
        _ensure_column(cursor, 'submissions', 'file_path', 'TEXT')

        cursor.execute('''
            CREATE UNIQUE INDEX IF NOT EXISTS idx_submissions_email
            ON submissions(email)
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_submissions_created
            ON submissions(created_at DESC)
        ''')

        # One-time verification codes
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS otp_codes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL,
                code_hash TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                expires_at INTEGER NOT NULL,
                verified_at INTEGER,
                attempts INTEGER NOT NULL DEFAULT 0
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_otp_email_created
            ON otp_codes(email, created_at DESC)
        ''')

        conn.commit()
        logger.info("Database initialized successfully")
