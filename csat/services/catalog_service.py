"""
Question catalog: an immutable snapshot of the questions file, swapped
whole when the file changes on disk.
"""

import json
import logging
import os
import tempfile
import threading
from typing import Tuple

import pandas as pd

from config import CATALOG_HEADERS
from csat.models.question import CatalogError, Question

logger = logging.getLogger(__name__)


def parse_catalog(data) -> Tuple[Question, ...]:
    """Validate raw catalog JSON and build the ordered question tuple."""
    if isinstance(data, dict):
        data = data.get('questions')
    if not isinstance(data, list):
        raise CatalogError("Catalog must be a list of questions")

    questions = []
    seen = set()
    for position, item in enumerate(data, start=1):
        question = Question.from_dict(item, position)
        if question.code in seen:
            raise CatalogError(f"Duplicate question code '{question.code}'")
        seen.add(question.code)
        questions.append(question)
    return tuple(questions)


class QuestionCatalog:
    """
    Holds the current catalog snapshot.

    Readers call ``questions()`` and get a tuple that never changes; a reload
    builds a new tuple and replaces the reference, so a request keeps seeing
    the snapshot it started with.
    """

    def __init__(self, path):
        self.path = path
        self._snapshot: Tuple[Question, ...] = ()
        self._mtime = None
        self._reload_lock = threading.Lock()
        self.reload()

    def _file_mtime(self):
        try:
            return os.stat(self.path).st_mtime_ns
        except OSError:
            return None

    def reload(self):
        """Load the file and swap in the new snapshot."""
        with self._reload_lock:
            mtime = self._file_mtime()
            with open(self.path, 'r', encoding='utf-8') as f:
                snapshot = parse_catalog(json.load(f))
            self._snapshot = snapshot
            self._mtime = mtime
            logger.info(f"Loaded {len(snapshot)} questions from {self.path}")
            return snapshot

    def refresh_if_changed(self):
        """Reload when the file changed; keep the old snapshot if the new file is broken."""
        mtime = self._file_mtime()
        if mtime is None or mtime == self._mtime:
            return False
        try:
            self.reload()
            return True
        except (OSError, ValueError) as e:
            # remember the broken version so it is not re-parsed on every request
            self._mtime = mtime
            logger.error(f"Keeping previous catalog, reload of {self.path} failed: {e}")
            return False

    def questions(self) -> Tuple[Question, ...]:
        self.refresh_if_changed()
        return self._snapshot

    def as_dicts(self):
        return [q.to_dict() for q in self.questions()]

    def replace(self, questions):
        """Write a new catalog file atomically and load it."""
        snapshot = parse_catalog([q.to_dict() if isinstance(q, Question) else q for q in questions])
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump([q.to_dict() for q in snapshot], f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return self.reload()


def read_catalog_excel(file_path):
    """
    Read questions from an uploaded Excel sheet.

    Returns:
        Tuple of (is_valid, error_message, list of question dicts)
    """
    try:
        df = pd.read_excel(file_path)
    except Exception as e:
        logger.error(f"Error reading catalog Excel file: {e}")
        return False, f"Error reading Excel file: {str(e)}", []

    if df.empty:
        return False, "Excel file is empty", []

    df.columns = df.columns.astype(str).str.strip().str.lower()

    missing_headers = [h for h in CATALOG_HEADERS if h not in df.columns]
    if missing_headers:
        return False, f"Missing required columns: {', '.join(missing_headers)}. Required: {', '.join(CATALOG_HEADERS)}", []

    if df[CATALOG_HEADERS].isnull().any().any():
        return False, "Excel file contains empty values in required columns", []

    for column in CATALOG_HEADERS:
        df[column] = df[column].astype(str).str.strip()

    rows = [
        {
            'code': row['code'],
            'text': row['text'],
            'section': row['section'].upper(),
            'serviceArea': row['servicearea'],
        }
        for _, row in df.iterrows()
    ]
    return True, "", rows
