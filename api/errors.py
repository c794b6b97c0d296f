from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from services.errors import (
    InvalidCredentialsError,
    StoreUnavailableError,
    TokenError,
    TokenExpiredError,
    UserExistsError,
)


def error_response(error: str, message: str, status: int, details: dict | None = None, headers: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    response = jsonify(payload)
    if headers:
        response.headers.update(headers)
    return response, status


def register_error_handlers(app):
    # 400 Bad Request (generic)
    @app.errorhandler(400)
    def bad_request(e):
        if current_app and current_app.debug:
            logging.exception("Unhandled exception", exc_info=e)
        message = getattr(e, "description", "Bad request")
        return error_response("BAD_REQUEST", message, 400)

    # 401 Unauthorized; the message never says which check failed
    @app.errorhandler(401)
    def unauthorized(e):
        message = getattr(e, "description", "Unauthorized")
        return error_response("UNAUTHORIZED", message, 401)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # 409 Conflict
    @app.errorhandler(409)
    def conflict(e):
        message = getattr(e, "description", "Conflict")
        return error_response("CONFLICT", message, 409)

    # 422 Unprocessable Entity (validation)
    @app.errorhandler(422)
    def unprocessable(e):
        message = getattr(e, "description", "Unprocessable entity")
        return error_response("VALIDATION_ERROR", message, 422)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    @app.errorhandler(TokenExpiredError)
    def handle_token_expired(err: TokenExpiredError):
        return error_response("TOKEN_EXPIRED", "Token expired", 401)

    @app.errorhandler(StoreUnavailableError)
    def handle_store_unavailable(err: StoreUnavailableError):
        logging.error("Token store unavailable: %s", err)
        return error_response("STORE_UNAVAILABLE", "Service temporarily unavailable", 503)

    # Signature, structure, user and revocation failures all look the same
    @app.errorhandler(TokenError)
    def handle_token_error(err: TokenError):
        return error_response("UNAUTHORIZED", "Invalid token", 401)

    @app.errorhandler(InvalidCredentialsError)
    def handle_invalid_credentials(err: InvalidCredentialsError):
        return error_response("UNAUTHORIZED", "Invalid credentials", 401)

    @app.errorhandler(UserExistsError)
    def handle_user_exists(err: UserExistsError):
        return error_response("CONFLICT", str(err), 409)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response("BAD_REQUEST", err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        # In dev, include exception details to speed up debugging
        details = None
        if current_app and current_app.debug:
            logging.exception("Unhandled exception", exc_info=err)
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
