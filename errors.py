import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import RequestEntityTooLarge

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """Base error carrying the HTTP status it maps to at the route boundary."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(ChatError):
    status_code = 400
    default_message = "Missing fields"


class UnauthorizedError(ChatError):
    status_code = 401
    default_message = "Not authorized"


class InvalidCredentialsError(UnauthorizedError):
    default_message = "Invalid credentials"


class ForbiddenError(ChatError):
    status_code = 403
    default_message = "Forbidden"


class PayloadTooLargeError(ChatError):
    status_code = 413
    default_message = "File too large"


class NotFoundError(ChatError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ChatError):
    status_code = 409
    default_message = "Already exists"


class InternalError(ChatError):
    status_code = 500


def register_error_handlers(app):
    from models import db

    @app.errorhandler(ChatError)
    def handle_chat_error(error):
        if error.status_code >= 500:
            logger.error("Internal error: %s", error)
            return jsonify({"error": ChatError.default_message}), error.status_code
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error):
        db.session.rollback()
        logger.exception("Database error: %s", error)
        return jsonify({"error": ChatError.default_message}), 500

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        return jsonify({"error": "File too large"}), 413
