# Overview: Domain error taxonomy and the JSON error handlers that map it to HTTP.

from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException

from .extensions import db
from .validation import ValidationError


class ForbiddenError(Exception):
    """403: an authorization rule rejected the actor."""

    def __init__(self, message: str = "This action is unauthorized."):
        super().__init__(message)
        self.message = message


class NotFoundError(LookupError):
    """404: entity absent or soft-deleted."""

    def __init__(self, message: str = "Not found."):
        super().__init__(message)
        self.message = message


class ConflictError(Exception):
    """409: the requested state transition is not allowed from the current state."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def register_error_handlers(app) -> None:
    """Map domain errors to JSON responses; pending session changes are discarded first."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        db.session.rollback()
        return jsonify({"message": e.message, "errors": e.errors}), 422

    @app.errorhandler(ForbiddenError)
    def handle_forbidden(e: ForbiddenError):
        db.session.rollback()
        return jsonify({"message": e.message}), 403

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        db.session.rollback()
        return jsonify({"message": e.message}), 404

    @app.errorhandler(ConflictError)
    def handle_conflict(e: ConflictError):
        db.session.rollback()
        return jsonify({"message": e.message}), 409

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return jsonify({"message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify({"message": "Internal server error"}), 500
