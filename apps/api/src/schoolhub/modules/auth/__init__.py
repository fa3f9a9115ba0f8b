"""Authentication module."""

from schoolhub.modules.auth.router import router
from schoolhub.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse
from schoolhub.modules.auth.service import AuthService

__all__ = ["router", "AuthService", "LoginRequest", "RegisterRequest", "TokenResponse"]
