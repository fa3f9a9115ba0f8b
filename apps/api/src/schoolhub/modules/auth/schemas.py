"""Authentication schemas."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from schoolhub.modules.users.models import UserRole

PASSWORD_MIN_LENGTH = 6
# bcrypt only reads the first 72 bytes
PASSWORD_MAX_LENGTH = 72


def _normalize_email(value: str) -> str:
    return value.strip().lower()


def _strip_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Name must not be blank")
    return value


def _check_password_bytes(value: str) -> str:
    if len(value.encode()) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_LENGTH} bytes")
    return value


Name = Annotated[str, Field(min_length=1, max_length=100), AfterValidator(_strip_name)]
NormalizedEmail = Annotated[EmailStr, AfterValidator(_normalize_email)]
Password = Annotated[
    str,
    Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH),
    AfterValidator(_check_password_bytes),
]


class RegisterRequest(BaseModel):
    """Registration request schema."""

    name: Name
    email: NormalizedEmail
    password: Password
    role: UserRole = UserRole.TEACHER
    school_id: UUID | None = None


class LoginRequest(BaseModel):
    """Login request schema."""

    email: NormalizedEmail
    password: str = Field(..., min_length=1)


class UpdateDetailsRequest(BaseModel):
    """Profile update schema. Omitted fields are left unchanged."""

    name: Name | None = None
    email: NormalizedEmail | None = None


class UpdatePasswordRequest(BaseModel):
    """Password change schema for an authenticated user."""

    current_password: str = Field(..., min_length=1)
    new_password: Password


class ForgotPasswordRequest(BaseModel):
    """Forgot-password request schema."""

    email: NormalizedEmail


class ResetPasswordRequest(BaseModel):
    """New password supplied with a reset token."""

    password: Password


class TokenResponse(BaseModel):
    """Session token response schema."""

    access_token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class UserResponse(BaseModel):
    """Public view of a user. Never includes password or reset fields."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: UserRole
    school_id: str | None = None
    is_active: bool
    created_at: datetime
