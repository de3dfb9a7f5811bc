import json
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from csat.errors import ValidationError

logger = logging.getLogger(__name__)

survey_bp = Blueprint('survey', __name__)


def _services():
    return current_app.extensions['csat']


def _json_field(value, fallback, name):
    """Multipart forms carry meta/answers as JSON strings."""
    if value is None or value == '':
        return fallback
    try:
        return json.loads(value)
    except ValueError:
        raise ValidationError("Invalid payload", issues=[
            {'path': [name], 'message': f"'{name}' is not valid JSON", 'code': 'json_invalid'}
        ])


@survey_bp.route('/health', methods=['GET'])
def health():
    return jsonify({'ok': True, 'time': datetime.now(timezone.utc).isoformat()})


@survey_bp.route('/questions', methods=['GET'])
def questions():
    return jsonify({'questions': _services()['catalog'].as_dicts()})


@survey_bp.route('/submit', methods=['POST'])
def submit():
    services = _services()
    identity = services['gate'].authorize(request.headers.get('X-Email'))

    attachment = None
    if request.mimetype in ('multipart/form-data', 'application/x-www-form-urlencoded'):
        meta = _json_field(request.form.get('meta'), {}, 'meta')
        answers = _json_field(request.form.get('answers'), [], 'answers')
        remark = request.form.get('remark', '')
        attachment = request.files.get('file')
    else:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("Invalid payload")
        meta = body.get('meta')
        answers = body.get('answers')
        remark = body.get('remark')

    result = services['submissions'].submit(identity, meta, answers, remark, attachment)
    return jsonify({'ok': True, 'id': result['id'], 'scores': result['scores']})


@survey_bp.route('/uploads/<path:filename>', methods=['GET'])
def uploaded_file(filename):
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)
