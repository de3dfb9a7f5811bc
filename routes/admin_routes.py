from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.utils import secure_filename
import os
import logging

from config import CATALOG_EXTENSIONS, MAX_FILE_SIZE
from csat.errors import AuthorizationError, NotFoundError, ValidationError
from csat.models.question import CatalogError
from csat.models.submission import Submission
from csat.services.auth_service import admin_required, check_credentials, issue_token
from csat.services.catalog_service import read_catalog_excel
from csat.services.dashboard_service import build_summary
from csat.services.excel_service import build_submissions_workbook, create_sample_catalog_excel
from csat.services.schemas import AdminLoginRequest, parse_payload
from csat.services.submission_service import join_with_catalog
from report_generator import generate_dashboard_report
from utils import allowed_file, now_ms

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _services():
    return current_app.extensions['csat']


@admin_bp.route('/login', methods=['POST'])
def admin_login():
    body = parse_payload(AdminLoginRequest, request.get_json(silent=True))
    cfg = current_app.config
    if not check_credentials(body.email, body.password, cfg['ADMIN_EMAIL'], cfg['ADMIN_PASSWORD']):
        logger.warning(f"Failed admin login for {body.email}")
        raise AuthorizationError("Invalid credentials")

    token = issue_token(body.email, cfg['JWT_SECRET'], cfg['JWT_EXPIRY_DAYS'])
    logger.info(f"Admin logged in: {body.email}")
    return jsonify({'ok': True, 'token': token})


@admin_bp.route('/submissions', methods=['GET'])
@admin_required
def list_submissions():
    """Most recent submissions, bounded by LIST_LIMIT."""
    items = Submission.list_recent(current_app.config['LIST_LIMIT'])
    return jsonify({'items': items, 'total': Submission.count()})


@admin_bp.route('/submissions/<int:submission_id>', methods=['GET'])
@admin_required
def submission_detail(submission_id):
    submission = Submission.get(submission_id)
    if not submission:
        raise NotFoundError("Not found")

    questions = _services()['catalog'].questions()
    submission['questions'] = [q.to_dict() for q in questions]
    submission['items'] = join_with_catalog(questions, submission['answers'])
    return jsonify(submission)


@admin_bp.route('/submissions/<int:submission_id>', methods=['DELETE'])
@admin_required
def delete_submission(submission_id):
    """Delete the row first, then the attachment; a leftover file is tolerated."""
    deleted = Submission.delete(submission_id)
    if not deleted:
        raise NotFoundError("Not found")

    logger.info(f"Deleted submission {submission_id}")
    file_removed = _services()['submissions'].remove_attachment(deleted['file_path'])
    return jsonify({
        'ok': True,
        'id': deleted['id'],
        'file_path': deleted['file_path'],
        'file_removed': file_removed,
    })


@admin_bp.route('/stats', methods=['GET'])
@admin_required
def stats():
    return jsonify({'series': Submission.score_series()})


@admin_bp.route('/summary', methods=['GET'])
@admin_required
def summary():
    return jsonify(build_summary(Submission.all_scores()))


@admin_bp.route('/report.pdf', methods=['GET'])
@admin_required
def dashboard_report():
    pdf = generate_dashboard_report(build_summary(Submission.all_scores()), Submission.score_series())
    as_attachment = request.args.get('download', 'false').lower() == 'true'
    return send_file(
        pdf,
        mimetype='application/pdf',
        as_attachment=as_attachment,
        download_name='csat_dashboard.pdf',
    )


@admin_bp.route('/export.xlsx', methods=['GET'])
@admin_required
def export_submissions():
    items = Submission.list_recent(current_app.config['LIST_LIMIT'], with_answers=True)
    workbook = build_submissions_workbook(items, _services()['catalog'].questions())
    return send_file(
        workbook,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name='csat_submissions.xlsx',
    )


@admin_bp.route('/questions/sample', methods=['GET'])
@admin_required
def download_catalog_sample():
    workbook = create_sample_catalog_excel(_services()['catalog'].questions())
    return send_file(
        workbook,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name='questions_template.xlsx',
    )


@admin_bp.route('/questions/upload', methods=['POST'])
@admin_required
def upload_catalog():
    """Replace the question catalog from an Excel sheet."""
    if 'file' not in request.files:
        raise ValidationError("No file uploaded")

    file = request.files['file']
    if file.filename == '':
        raise ValidationError("No file selected")

    if not allowed_file(file.filename, CATALOG_EXTENSIONS):
        raise ValidationError("Invalid file type. Please upload an Excel file (.xlsx or .xls)")

    # Check file size
    file.seek(0, os.SEEK_END)
    file_size = file.tell()
    file.seek(0)

    if file_size > MAX_FILE_SIZE:
        raise ValidationError(f"File too large. Maximum size is {MAX_FILE_SIZE / (1024*1024):.0f}MB")

    upload_folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(upload_folder, exist_ok=True)
    filepath = os.path.join(upload_folder, f"catalog-{now_ms()}-{secure_filename(file.filename)}")
    file.save(filepath)

    try:
        is_valid, message, rows = read_catalog_excel(filepath)
        if not is_valid:
            raise ValidationError(message)
        try:
            questions = _services()['catalog'].replace(rows)
        except CatalogError as e:
            raise ValidationError(str(e))
    finally:
        try:
            os.remove(filepath)
        except OSError as e:
            logger.warning(f"Could not remove uploaded catalog {filepath}: {e}")

    logger.info(f"Question catalog replaced with {len(questions)} questions")
    return jsonify({
        'ok': True,
        'message': f"Loaded {len(questions)} questions",
        'questions': [q.to_dict() for q in questions],
    })
