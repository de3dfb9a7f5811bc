from flask import Blueprint, current_app, jsonify, request

from csat.errors import NotFoundError
from csat.services.schemas import OtpSendRequest, OtpVerifyRequest, parse_payload
from csat.services.verification import OtpGate

otp_bp = Blueprint('otp', __name__, url_prefix='/otp')


def _otp_gate():
    gate = current_app.extensions['csat']['gate']
    if not isinstance(gate, OtpGate):
        raise NotFoundError("Email verification is not enabled")
    return gate


@otp_bp.route('/send', methods=['POST'])
def send_code():
    gate = _otp_gate()
    body = parse_payload(OtpSendRequest, request.get_json(silent=True))
    return jsonify(gate.request_code(body.email))


@otp_bp.route('/verify', methods=['POST'])
def verify_code():
    gate = _otp_gate()
    body = parse_payload(OtpVerifyRequest, request.get_json(silent=True))
    return jsonify(gate.verify_code(body.email, body.code))
