"""
Service for Excel exports of survey submissions and catalog templates.
"""

import io
import logging
from typing import Dict, List

import pandas as pd

logger = logging.getLogger(__name__)

SUBMISSION_COLUMNS = [
    'id', 'email', 'submitted_at', 'vessel', 'customerOwner', 'contact', 'position',
    'overall', 'onboard', 'ashore', 'remark', 'file_path',
]

ANSWER_COLUMNS = [
    'submission_id', 'code', 'question', 'section', 'serviceArea',
    'relevant', 'importance', 'satisfaction',
]


def _submitted_at(created_at):
    # Excel cannot store timezone-aware datetimes
    return pd.to_datetime(created_at, unit='ms', utc=True).tz_localize(None)


def build_submissions_workbook(submissions: List[Dict], questions) -> io.BytesIO:
    """
    Write submissions to an in-memory workbook.

    Sheet "Submissions" holds one row per survey, sheet "Answers" one row per
    answer with the current question text.
    """
    by_code = {q.code: q for q in questions}

    summary_rows = []
    answer_rows = []
    for item in submissions:
        meta = item.get('meta') or {}
        scores = item.get('scores') or {}
        summary_rows.append({
            'id': item['id'],
            'email': item['email'],
            'submitted_at': _submitted_at(item['created_at']),
            'vessel': meta.get('vessel', ''),
            'customerOwner': meta.get('customerOwner', ''),
            'contact': meta.get('contact', ''),
            'position': meta.get('position', ''),
            'overall': scores.get('overall', 0),
            'onboard': scores.get('onboard', 0),
            'ashore': scores.get('ashore', 0),
            'remark': item.get('remark', ''),
            'file_path': item.get('file_path') or '',
        })
        for answer in item.get('answers') or []:
            question = by_code.get(answer.get('code'))
            answer_rows.append({
                'submission_id': item['id'],
                'code': answer.get('code'),
                'question': question.text if question else '',
                'section': question.section if question else '',
                'serviceArea': question.serviceArea if question else '',
                'relevant': answer.get('relevant'),
                'importance': answer.get('importance'),
                'satisfaction': answer.get('satisfaction'),
            })

    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine='openpyxl') as writer:
        pd.DataFrame(summary_rows, columns=SUBMISSION_COLUMNS).to_excel(
            writer, sheet_name='Submissions', index=False
        )
        pd.DataFrame(answer_rows, columns=ANSWER_COLUMNS).to_excel(
            writer, sheet_name='Answers', index=False
        )
    buf.seek(0)
    logger.info(f"Exported {len(summary_rows)} submissions to Excel")
    return buf


def create_sample_catalog_excel(questions) -> io.BytesIO:
    """
    Create a catalog template pre-filled with the current questions.
    """
    df = pd.DataFrame(
        [
            {'code': q.code, 'text': q.text, 'section': q.section, 'serviceArea': q.serviceArea}
            for q in questions
        ],
        columns=['code', 'text', 'section', 'serviceArea'],
    )
    buf = io.BytesIO()
    df.to_excel(buf, index=False, engine='openpyxl')
    buf.seek(0)
    return buf
