# Overview: App-wide JSON error handlers.

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


def register_error_handlers(app) -> None:
    """
    Make every error a JSON body. Route-level handlers deal with the
    expected service errors; this catches what slips past them.
    """

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return jsonify({"error": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        body = {"error": "Internal server error"}
        if current_app.config.get("EXPOSE_ERROR_DETAILS"):
            body["message"] = str(exc)
        return jsonify(body), 500


def internal_error(log_message: str, exc: Exception):
    """Log an unexpected route failure and build the 500 response."""
    current_app.logger.exception(log_message)
    body = {"error": "Internal server error"}
    if current_app.config.get("EXPOSE_ERROR_DETAILS"):
        body["message"] = str(exc)
    return jsonify(body), 500
