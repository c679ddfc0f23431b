"""User model definition for the SkillPath platform."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, String, UniqueConstraint, false, true
from sqlalchemy.orm import Mapped, mapped_column, validates

from skillpath.core.extensions import db

from .base import PKMixin, ReprMixin, SoftDeleteMixin, TimestampMixin


class UserRole(str, enum.Enum):
    """Authorization role embedded in access tokens."""

    USER = "USER"
    ADMIN = "ADMIN"


class User(PKMixin, ReprMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    """
    Authentication identity.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    username : str
        Public handle. Unique per system.
    password_hash : str
        One-way hash produced by the password hasher; raw passwords never
        reach this model.
    role : UserRole
        ``USER`` for self-registered accounts.
    is_active : bool
        Disabled accounts cannot log in nor refresh tokens.
    email_verified : bool
        Set once the address has been confirmed.
    last_login_at : datetime | None
        Updated on every successful login.
    deleted_at : datetime | None
        Soft-delete marker (from mixin). A deleted user is always inactive.
    created_at : datetime
        Registration timestamp (from mixin).
    """

    __tablename__ = "users"

    # Columns
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    username: Mapped[str] = mapped_column(String(30), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", native_enum=False, length=16),
        nullable=False,
        default=UserRole.USER,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Constraints & indexes
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
        Index("ix_users_email", "email"),
        Index("ix_users_username", "username"),
    )

    # -------------------- Lifecycle --------------------
    def record_login(self, at: datetime) -> None:
        """Stamp a successful login."""
        self.last_login_at = at

    def activate(self) -> None:
        """
        Re-enable the account.

        :raises ValueError: If the user has been soft-deleted.
        """
        if self.is_deleted:
            raise ValueError("Deleted users cannot be activated.")
        self.is_active = True

    def deactivate(self) -> None:
        self.is_active = False

    def soft_delete(self, at: datetime) -> None:
        """Mark the user as deleted; this also deactivates the account."""
        self.deleted_at = at

    def change_password_hash(self, password_hash: str) -> None:
        if not password_hash:
            raise ValueError("Password hash must be a non-empty string.")
        self.password_hash = password_hash

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :param key: Field name (``email``).
        :type key: str
        :param value: Email to normalize.
        :type value: str
        :returns: Normalized email (lowercased/trimmed).
        :rtype: str
        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation lives in the Email value object.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()

    @validates("is_active")
    def _guard_active(self, key: str, value: bool) -> bool:
        """
        Refuse to activate a soft-deleted user.

        :raises ValueError: When ``value`` is truthy and ``deleted_at`` is set.
        """
        if value and self.deleted_at is not None:
            raise ValueError("A deleted user cannot be active.")
        return bool(value)

    @validates("deleted_at")
    def _deactivate_on_delete(self, key: str, value: datetime | None) -> datetime | None:
        if value is not None:
            self.is_active = False
        return value
