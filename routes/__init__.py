# routes/__init__.py
import logging

from flask import jsonify
from werkzeug.exceptions import NotFound as HTTPNotFound
from werkzeug.exceptions import RequestEntityTooLarge

from errors import SessionError, StorageFault
from .files import bp as files_bp
from .session import bp as session_bp

logger = logging.getLogger(__name__)


def _session_error(e: SessionError):
    if isinstance(e, StorageFault):
        logger.error("Storage fault: %s", e.detail)
    return jsonify(e.to_dict()), e.status


def _request_too_large(e: RequestEntityTooLarge):
    return jsonify(error="payload-too-large"), 413


def _not_found(e: HTTPNotFound):
    # e.g. a download whose file was reclaimed between lookup and send
    return jsonify(error="not-found"), 404


def register_routes(app):
    app.register_blueprint(session_bp)
    app.register_blueprint(files_bp)
    app.register_error_handler(SessionError, _session_error)
    app.register_error_handler(RequestEntityTooLarge, _request_too_large)
    app.register_error_handler(HTTPNotFound, _not_found)
