"""
Service Exceptions

Error taxonomy shared by the authentication service, the credential store
and the token utilities. Routers translate these into HTTP responses using
``error_code`` and ``status_code``.
"""


class AuthServiceError(Exception):
    """Base exception for authentication service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> dict[str, str]:
        """Response body for this error."""
        return {"error": self.error_code, "message": self.message}


class ValidationError(AuthServiceError):
    """Raised for missing, malformed or conflicting input. Names the field."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
        )

    def to_detail(self) -> dict[str, str]:
        return {**super().to_detail(), "field": self.field}


class InvalidCredentialsError(AuthServiceError):
    """Raised when an email/password pair does not authenticate."""

    def __init__(self):
        super().__init__(
            message="Invalid email or password.",
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class InvalidTokenError(AuthServiceError):
    """Raised when a session token is malformed, expired or forged."""

    def __init__(self):
        super().__init__(
            message="Invalid or expired authentication token.",
            error_code="INVALID_TOKEN",
            status_code=401,
        )


class TokenNotFoundOrExpiredError(AuthServiceError):
    """Raised when a password reset token matches no open reset window."""

    def __init__(self):
        super().__init__(
            message="This password reset link is invalid or has expired.",
            error_code="RESET_TOKEN_INVALID",
            status_code=400,
        )


class DeliveryError(AuthServiceError):
    """Raised when the email collaborator fails to deliver a message."""

    def __init__(self, message: str = "Email could not be sent. Please try again later."):
        super().__init__(
            message=message,
            error_code="DELIVERY_FAILED",
            status_code=502,
        )


class TransientError(AuthServiceError):
    """Raised when the credential store is unavailable. Safe to retry."""

    def __init__(self, message: str = "Service temporarily unavailable. Please try again."):
        super().__init__(
            message=message,
            error_code="SERVICE_UNAVAILABLE",
            status_code=503,
        )


class NotFoundError(AuthServiceError):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str = "Resource not found."):
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
        )
