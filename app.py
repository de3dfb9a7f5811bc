import os
import logging
from rich.logging import RichHandler
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

import config
from csat.errors import SurveyError
from csat.models import init_db, set_db_path
from csat.services.catalog_service import QuestionCatalog
from csat.services.mailer import Mailer
from csat.services.submission_service import SubmissionService
from csat.services.verification import build_gate
from routes.admin_routes import admin_bp
from routes.otp_routes import otp_bp
from routes.survey_routes import survey_bp

from asgiref.wsgi import WsgiToAsgi

# Configure rich logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(message)s",
)

logging.root.handlers = [
    RichHandler(rich_tracebacks=True, show_path=True, tracebacks_show_locals=False,
                log_time_format="[%b %d, %Y, %I:%M:%S %p]",
                )
]
logger = logging.getLogger("csat_survey")


def register_error_handlers(app):
    @app.errorhandler(SurveyError)
    def handle_survey_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        limit = app.config['MAX_CONTENT_LENGTH'] / (1024 * 1024)
        return jsonify({'error': f"File too large. Maximum size is {limit:.0f}MB"}), 413

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception(f"Unhandled error: {error}")
        return jsonify({'error': "Internal server error"}), 500


def create_app(overrides=None, mailer=None, send=None, clock=None):
    """
    Build the Flask app.

    ``overrides`` replaces config values (DATABASE_PATH, QUESTIONS_PATH,
    UPLOAD_FOLDER, VERIFICATION_MODE, ...); ``mailer``, ``send`` and
    ``clock`` swap the mail transport, the background dispatcher and the
    OTP clock.
    """
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=config.SECRET_KEY,
        MAX_CONTENT_LENGTH=config.MAX_FILE_SIZE,
        DATABASE_PATH=config.DATABASE_PATH,
        QUESTIONS_PATH=config.QUESTIONS_PATH,
        UPLOAD_FOLDER=config.UPLOAD_FOLDER,
        APP_ORIGIN=config.APP_ORIGIN,
        JWT_SECRET=config.JWT_SECRET,
        JWT_EXPIRY_DAYS=config.JWT_EXPIRY_DAYS,
        ADMIN_EMAIL=config.ADMIN_EMAIL,
        ADMIN_PASSWORD=config.ADMIN_PASSWORD,
        VERIFICATION_MODE=config.VERIFICATION_MODE,
        NOTIFY_EMAIL=config.NOTIFY_EMAIL,
        LIST_LIMIT=config.LIST_LIMIT,
    )
    app.config.update(overrides or {})

    CORS(app, origins=[app.config['APP_ORIGIN']], supports_credentials=True)

    set_db_path(app.config['DATABASE_PATH'])
    init_db()

    # Ensure upload folder exists
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    mailer = mailer or Mailer()
    gate_options = {'mailer': mailer}
    if send is not None:
        gate_options['send'] = send
    if clock is not None:
        gate_options['clock'] = clock

    mode = app.config['VERIFICATION_MODE']
    gate = build_gate(mode, **gate_options) if mode == 'otp' else build_gate(mode)

    catalog = QuestionCatalog(app.config['QUESTIONS_PATH'])
    submission_options = {
        'upload_folder': app.config['UPLOAD_FOLDER'],
        'mailer': mailer,
        'notify_email': app.config['NOTIFY_EMAIL'],
    }
    if send is not None:
        submission_options['send'] = send

    app.extensions['csat'] = {
        'catalog': catalog,
        'gate': gate,
        'submissions': SubmissionService(catalog, **submission_options),
    }

    # Register blueprints
    app.register_blueprint(survey_bp)
    app.register_blueprint(otp_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)

    logger.info(f"Verification mode: {gate.name}; {len(catalog.questions())} questions loaded")
    return app


def create_asgi_app(overrides=None):
    return WsgiToAsgi(create_app(overrides))


if __name__ == "__main__":
    import uvicorn
    asgi_app = create_asgi_app()
    logger.info(f"Starting server on 0.0.0.0:{config.PORT}")
    uvicorn.run(asgi_app, host="0.0.0.0", port=config.PORT, log_config=None)
