"""
Submission admission: validate, score, store.
"""

import logging
import os

import config
from csat.errors import ConflictError, ValidationError
from csat.models.submission import Submission
from csat.services.mailer import dispatch
from csat.services.schemas import SubmitPayload, parse_payload
from csat.services.scoring import compute_scores, describe_level
from utils import allowed_file, now_ms, safe_upload_name

logger = logging.getLogger(__name__)


def missing_rating_issues(answers):
    """Issues for every relevant answer lacking importance or satisfaction."""
    issues = []
    for index, answer in enumerate(answers):
        if answer.relevant and (answer.importance is None or answer.satisfaction is None):
            issues.append({
                'path': ['answers', index],
                'code': answer.code,
                'message': f"Missing importance/satisfaction for {answer.code}",
            })
    return issues


class SubmissionService:
    def __init__(self, catalog, upload_folder=None, mailer=None, notify_email=None, send=dispatch):
        self.catalog = catalog
        self.upload_folder = upload_folder or config.UPLOAD_FOLDER
        self.mailer = mailer
        self.notify_email = config.NOTIFY_EMAIL if notify_email is None else notify_email
        self.send = send

    def validate(self, meta, answers, remark):
        payload = parse_payload(SubmitPayload, {
            'meta': meta if meta is not None else {},
            'answers': answers if answers is not None else [],
            'remark': remark if remark is not None else '',
        })
        issues = missing_rating_issues(payload.answers)
        if issues:
            raise ValidationError(issues[0]['message'], issues=issues)
        return payload

    def _store_attachment(self, attachment, timestamp):
        """Save an uploaded werkzeug FileStorage; returns (disk path, public path)."""
        if attachment is None or not attachment.filename:
            return None, None
        if not allowed_file(attachment.filename, config.ALLOWED_EXTENSIONS):
            raise ValidationError(
                f"Invalid attachment type. Allowed: {', '.join(sorted(config.ALLOWED_EXTENSIONS))}"
            )
        os.makedirs(self.upload_folder, exist_ok=True)
        name = safe_upload_name(attachment.filename, timestamp)
        disk_path = os.path.join(self.upload_folder, name)
        attachment.save(disk_path)
        return disk_path, f"/uploads/{name}"

    def submit(self, identity, meta, answers, remark=None, attachment=None):
        """
        Admit one survey.

        Returns:
            Dict with the new ``id`` and the computed ``scores``.
        """
        payload = self.validate(meta, answers, remark)
        answer_dicts = [a.model_dump() for a in payload.answers]
        scores = compute_scores(self.catalog.questions(), answer_dicts)

        # fast path only; the unique index on email is what guarantees one row
        if Submission.exists_for_email(identity):
            raise ConflictError("A survey has already been submitted for this email")

        created_at = now_ms()
        disk_path, file_path = self._store_attachment(attachment, created_at)
        try:
            submission_id = Submission.create(
                email=identity,
                meta=payload.meta.model_dump(),
                answers=answer_dicts,
                scores=scores,
                remark=(payload.remark or '').strip(),
                file_path=file_path,
                created_at=created_at,
            )
        except Exception:
            # the row never made it, drop the file it would have referenced
            if disk_path and os.path.exists(disk_path):
                os.remove(disk_path)
            raise

        logger.info(f"Stored submission {submission_id} for {identity} (overall {scores['overall']}%)")

        if self.mailer and self.notify_email:
            self.send(self.mailer.send_submission_notice, self.notify_email, submission_id, identity, scores)

        return {'id': submission_id, 'scores': scores}

    def remove_attachment(self, file_path):
        """
        Delete the stored file behind a ``/uploads/<name>`` reference.

        Runs after the row is gone; a failure leaves an orphaned file and is
        only logged.
        """
        if not file_path:
            return False
        disk_path = os.path.join(self.upload_folder, os.path.basename(file_path))
        try:
            os.remove(disk_path)
            logger.info(f"Removed attachment {disk_path}")
            return True
        except FileNotFoundError:
            logger.warning(f"Attachment already missing: {disk_path}")
        except OSError as e:
            logger.error(f"Could not remove attachment {disk_path}: {e}")
        return False


def join_with_catalog(questions, answers):
    """
    Pair stored answers with the live catalog for display.

    Catalog questions come first in catalog order (``answer`` is None when
    unanswered); answers whose code left the catalog are appended with no
    question text.
    """
    by_code = {}
    for answer in answers or []:
        by_code[answer.get('code')] = answer

    def level(answer):
        if answer and answer.get('relevant') and answer.get('satisfaction') is not None:
            return describe_level(answer['satisfaction'])
        return None

    rows = []
    for question in questions:
        answer = by_code.pop(question.code, None)
        rows.append({**question.to_dict(), 'answer': answer, 'level': level(answer)})
    for code, answer in by_code.items():
        rows.append({
            'code': code, 'text': None, 'section': None, 'serviceArea': None,
            'answer': answer, 'level': level(answer),
        })
    return rows
