"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``register_error_handlers`` turns them into JSON
responses. Anything that is not an ``ApiError`` ends up in the catch-all
handler as a generic 500.
"""

import traceback

from flask import jsonify, request
from pydantic import ValidationError as SchemaValidationError
from pymongo.errors import DuplicateKeyError
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class BadRequest(ApiError):
    status_code = 400
    default_message = "Invalid request data"


class ValidationError(BadRequest):
    default_message = "Validation failed"


class InsufficientStock(BadRequest):
    default_message = "Insufficient stock"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(ApiError):
    status_code = 500
    default_message = "Server error"


def format_schema_errors(exc: SchemaValidationError):
    return [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            app.logger.error("%s %s failed: %s", request.method, request.path, exc)
        return jsonify({"error": exc.message}), exc.status_code

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(exc: SchemaValidationError):
        return jsonify({"errors": format_schema_errors(exc)}), 400

    @app.errorhandler(DuplicateKeyError)
    def handle_duplicate_key(exc: DuplicateKeyError):
        app.logger.warning("Duplicate key on %s: %s", request.path, exc)
        return jsonify({"error": "Resource already exists"}), 409

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        if exc.code == 404 and request.path.startswith("/api"):
            message = "API endpoint not found"
        else:
            message = exc.description or exc.name
        return jsonify({"error": True, "message": message}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        response = {"error": True, "message": "Internal Server Error"}
        if app.config.get("ENV") == "development":
            response["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return jsonify(response), 500
