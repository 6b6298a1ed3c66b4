"""
API error taxonomy.

Handlers raise these; ``register_error_handlers`` renders them as
``{"error": message, ...}`` with the matching status code.
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

log = logging.getLogger("plancher.errors")


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"error": self.message}
        body.update(self.extra)
        return body


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404

    def __init__(self, message: str = "Not found", **extra):
        super().__init__(message, **extra)


class UpstreamError(ApiError):
    """External API failure. Carries the upstream status and body."""
    status_code = 500

    def __init__(self, message: str, status: int = None, details: str = ""):
        super().__init__(message, status=status, details=details)
        self.status = status
        self.details = details


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def _api_error(e):
        if e.status_code >= 500:
            log.error("%s: %s", type(e).__name__, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _http_error(e):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def _unhandled(e):
        log.exception("Unhandled error: %s", e)
        return jsonify({"error": "Server error", "details": str(e)}), 500
