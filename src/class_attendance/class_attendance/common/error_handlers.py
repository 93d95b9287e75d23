from __future__ import annotations

from flask import Flask, jsonify

from ..app_logger import get_logger
from ..core.exceptions import (
    AlreadyFullyRecordedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    StoreError,
    ValidationError,
)

logger = get_logger(__name__)

# Most specific first; the first isinstance match wins.
STATUS_CODES = (
    (AlreadyFullyRecordedError, 200),
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StoreError, 500),
)


def status_for(error: DomainError) -> int:
    for exc_type, status in STATUS_CODES:
        if isinstance(error, exc_type):
            return status
    return 400


def register(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = status_for(error)
        if isinstance(error, StoreError):
            message = "Server error"
            if app.config.get("DEBUG"):
                message = f"Server error: {error}"
            return jsonify({"success": False, "message": message}), status

        body = {"success": status < 400, "message": str(error)}
        if isinstance(error, AlreadyFullyRecordedError):
            body["totalStudents"] = error.total_students
        elif status >= 400:
            logger.info("request rejected (%d): %s", status, error)
        return jsonify(body), status

    @app.errorhandler(404)
    def handle_unknown_route(_error):
        return jsonify({"success": False, "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def handle_bad_method(_error):
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def handle_unexpected(error):
        logger.error("unhandled error: %s", getattr(error, "original_exception", error))
        return jsonify({"success": False, "message": "Server error"}), 500
