"""Service-layer error taxonomy.

Services raise these; a single exception handler in app.main renders them as
``{"success": false, "error": <message>, "code": <code>}`` with the matching
HTTP status. Nothing here is retried.
"""

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Not enough permissions"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ValidationFailed(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class InvalidAmount(ValidationFailed):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be greater than zero"


class InvalidFrequency(ValidationFailed):
    code = "INVALID_FREQUENCY"
    default_message = "Unsupported bill frequency"


class InsufficientFunds(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INSUFFICIENT_FUNDS"
    default_message = "Insufficient funds"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "The resource was modified concurrently, please retry"


class InternalError(ServiceError):
    """Rendered for any exception that is not a ServiceError."""
