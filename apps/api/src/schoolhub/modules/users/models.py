"""
User Models

Identity model for authentication and authorization.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum as SAEnum, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.modules.shared import BaseModel


class UserRole(str, Enum):
    """User roles in the system."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class User(BaseModel):
    """
    User model for authentication and authorization.

    Only the bcrypt digest of the password is stored. Hashing happens in the
    auth service before a value reaches this model.

    The reset token columns hold the SHA-256 hash of an outstanding password
    reset token and its expiry; both are set and cleared together.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    role: Mapped[UserRole] = mapped_column(
        SAEnum(
            UserRole,
            name="user_role",
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=UserRole.TEACHER,
    )

    # Weak reference: schools are managed elsewhere
    school_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        nullable=True,
        index=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Password reset
    reset_token_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    reset_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "(reset_token_hash IS NULL) = (reset_token_expiry IS NULL)",
            name="ck_users_reset_token_pair",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

    @property
    def has_pending_reset(self) -> bool:
        return self.reset_token_hash is not None
