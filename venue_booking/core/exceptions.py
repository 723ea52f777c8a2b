# venue_booking/core/exceptions.py
"""
Application error hierarchy.

Every error a booking, modification or agent operation can refuse with is an
``AppError`` subclass carrying a stable ``error_code`` and a user-facing
(Swedish) message. The HTTP layer renders them in
``venue_booking.middleware.error_handler``.
"""

from typing import Optional


class ErrorCategory:
    """Error categories for structured error responses"""
    VALIDATION = "validation_error"
    CONFLICT = "conflict_error"
    AUTHENTICATION = "authentication_error"
    AUTHORIZATION = "authorization_error"
    NOT_FOUND = "not_found_error"
    RATE_LIMIT = "rate_limit_error"
    EXTERNAL_SERVICE = "external_service_error"
    DATABASE = "database_error"
    INTERNAL = "internal_error"


# Conflict codes surfaced verbatim to callers
DATE_BLOCKED = "date_blocked"
DATE_BOOKED = "date_booked"
PENDING_MODIFICATION_EXISTS = "pending_modification_exists"
CONVERSATION_CONFLICT = "conversation_conflict"


class AppError(Exception):
    """Base application error with structured information"""

    def __init__(
        self,
        message: str,
        category: str = ErrorCategory.INTERNAL,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[dict] = None,
        retry_after: Optional[int] = None,
    ):
        self.message = message
        self.category = category
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        self.retry_after = retry_after
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or out-of-range input. Never retried."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else {},
        )


class AuthenticationError(AppError):
    def __init__(self, message: str = "Ej inloggad"):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            status_code=401,
            error_code="NOT_AUTHENTICATED",
        )


class AuthorizationError(AppError):
    """Actor is neither the customer nor the owner for the entity."""

    def __init__(self, message: str = "Behörighet saknas"):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHORIZATION,
            status_code=403,
            error_code="FORBIDDEN",
        )


class NotFoundError(AppError):
    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.NOT_FOUND,
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource} if resource else {},
        )


class ConflictError(AppError):
    """Recoverable conflict; the caller may retry with different input."""

    def __init__(self, message: str, error_code: str, details: Optional[dict] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFLICT,
            status_code=409,
            error_code=error_code,
            details=details,
        )


class RateLimitError(AppError):
    """Rate limit exceeded errors"""

    def __init__(self, message: str = "För många förfrågningar. Försök igen om en stund.", retry_after: int = 60):
        super().__init__(
            message=message,
            category=ErrorCategory.RATE_LIMIT,
            status_code=429,
            error_code="RATE_LIMITED",
            retry_after=retry_after,
        )


class ExternalServiceError(AppError):
    """External service errors (LLM API, Redis)"""

    def __init__(self, message: str, service: str, status_code: int = 502):
        super().__init__(
            message=message,
            category=ErrorCategory.EXTERNAL_SERVICE,
            status_code=status_code,
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"service": service},
        )


class DatabaseError(AppError):
    def __init__(self, message: str = "Databasen är inte tillgänglig just nu"):
        super().__init__(
            message=message,
            category=ErrorCategory.DATABASE,
            status_code=503,
            error_code="DATABASE_ERROR",
            retry_after=30,
        )
