# app/core/exceptions.py
"""
Domain error taxonomy for the order service.

Services raise these; app.main turns them into JSON responses of the form
{"detail": <message>, "code": <code>, ...details}.
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for all business-rule and input failures."""

    code = "StorefrontError"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details}


class RequestValidationFailed(StorefrontError):
    """Malformed or missing input; the caller can fix it and retry."""

    code = "ValidationError"
    status_code = 422


class InvalidInputError(RequestValidationFailed):
    code = "InvalidInput"


class NotFoundError(StorefrontError):
    code = "NotFound"
    status_code = 404


class PermissionDeniedError(StorefrontError):
    code = "Forbidden"
    status_code = 403


class MethodUnavailableError(StorefrontError):
    code = "MethodUnavailable"
    status_code = 400


class OutOfStockError(StorefrontError):
    code = "OutOfStock"
    status_code = 409


class VoucherNoLongerValidError(StorefrontError):
    code = "VoucherNoLongerValid"
    status_code = 409


class InsufficientPointsError(StorefrontError):
    code = "InsufficientPoints"
    status_code = 409


class PreviewStaleError(StorefrontError):
    """The recomputed preview differs from what the client submitted."""

    code = "PreviewStale"
    status_code = 409


class InvalidTransitionError(StorefrontError):
    code = "InvalidTransition"
    status_code = 409


class AlreadyExistsError(StorefrontError):
    code = "AlreadyExists"
    status_code = 409


class AddressChangeLimitError(StorefrontError):
    code = "AddressChangeLimitReached"
    status_code = 409
