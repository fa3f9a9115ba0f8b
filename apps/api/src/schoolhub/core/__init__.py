"""
Core module - Configuration, database, security, email and errors.
"""

from schoolhub.core.config import get_settings, settings
from schoolhub.core.database import Base, close_db, get_db, init_db
from schoolhub.core.exceptions import (
    AuthServiceError,
    DeliveryError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    TokenNotFoundOrExpiredError,
    TransientError,
    ValidationError,
)
from schoolhub.core.security import (
    PasswordHasher,
    TokenIssuer,
    get_password_hasher,
    get_token_issuer,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Errors
    "AuthServiceError",
    "ValidationError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "TokenNotFoundOrExpiredError",
    "DeliveryError",
    "TransientError",
    "NotFoundError",
    # Security
    "PasswordHasher",
    "TokenIssuer",
    "get_password_hasher",
    "get_token_issuer",
]
