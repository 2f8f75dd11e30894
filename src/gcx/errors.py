"""
Application error hierarchy.

Every error a handler raises intentionally is an AppError subclass. The handlers
registered in gcx.middleware.error_handler turn them into the
{"success": false, "error": ...} envelope with the class's status code.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base application error."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "error": self.message, "code": self.error_code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class BadRequestError(AppError):
    status_code = 400
    error_code = "bad_request"


class UnauthorizedError(AppError):
    status_code = 401
    error_code = "unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


class InternalError(AppError):
    status_code = 500
    error_code = "internal_error"


class OtpProviderError(InternalError):
    """The OTP provider failed or answered with something we could not use."""

    error_code = "otp_provider_error"

    @property
    def is_rejection(self) -> bool:
        """True when the provider answered 4xx, i.e. it refused the input."""
        status = (self.details or {}).get("provider_status", 0)
        return 400 <= status < 500
