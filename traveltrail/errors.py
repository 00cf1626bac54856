"""
Error taxonomy shared by the handlers, the auth layer and the store.

Every error carries the HTTP status and a machine-readable code; the app
renders them as ``{"success": false, "code": ..., "message": ...}``.
"""

from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        errors: Optional[list[str]] = None,
    ):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if code:
            self.code = code
        self.errors = errors

    def to_body(self) -> dict:
        body = {"success": False, "code": self.code, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid request data"


class AuthError(ApiError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class ConfigurationError(ApiError):
    status_code = 500
    code = "SERVER_ERROR"
    message = "Server configuration error"


class UpstreamError(ApiError):
    status_code = 500
    code = "UPSTREAM_ERROR"
    message = "Internal server error"


class InternalError(ApiError):
    pass
