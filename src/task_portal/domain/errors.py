"""
Structured API errors.

Every failure a client can cause is one of these; the app layer turns them
into `{"error": true, "error_code", "message", "details"}` bodies.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class APIError(Exception):
    """Base API error with a structured response."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(APIError):
    """Input validation failed; `errors` maps field name to messages."""

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        self.errors = errors
        if message is None:
            first = next(iter(errors.values()), ["The given data was invalid."])
            message = first[0] if first else "The given data was invalid."
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=422,
            details={"errors": errors},
        )

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls({field: [message]})


class AuthenticationError(APIError):
    def __init__(self, message: str = "Unauthenticated."):
        super().__init__(message=message, error_code="AUTH_REQUIRED", status_code=401)


class AuthorizationError(APIError):
    def __init__(self, message: str = "This action is unauthorized."):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


class NotFoundError(APIError):
    def __init__(self, resource: str, resource_id: Optional[Any] = None):
        super().__init__(
            message=f"{resource} not found",
            error_code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "id": resource_id},
        )


class BadRequestError(APIError):
    def __init__(self, message: str = "Malformed request body."):
        super().__init__(message=message, error_code="BAD_REQUEST", status_code=400)


class UnsupportedMediaTypeError(APIError):
    def __init__(self, content_type: Optional[str]):
        super().__init__(
            message="Request body must be application/json.",
            error_code="UNSUPPORTED_MEDIA_TYPE",
            status_code=415,
            details={"content_type": content_type},
        )
