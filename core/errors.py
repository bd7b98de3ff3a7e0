"""
core/errors.py -- Application error taxonomy.

Services raise these; api/main.py turns them into the JSON envelope
{"success": false, "code": ..., "message": ...}. Services never build HTTP
responses themselves, so the same errors work from tests and routes alike.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors with a fixed HTTP status and a client-safe message."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    code = "unauthorized"


class AuthorizationError(AppError):
    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class UpstreamError(AppError):
    """The provider rejected a call.

    Auth flows raise it with status 400 and the provider's own message;
    resource flows use the default 500 with a generic message.
    """

    status_code = 500
    code = "upstream_error"


class ServiceUnavailableError(AppError):
    status_code = 503
    code = "service_unavailable"
