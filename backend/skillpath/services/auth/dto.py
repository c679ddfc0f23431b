# skillpath/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from skillpath.services._shared.dto import ClientInfo

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email as typed; normalized by the service.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    :param client: Device fingerprint used for session tracking.
    :type client: ClientInfo
    """

    email: str
    password: str
    client: ClientInfo = field(default_factory=ClientInfo)


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for account registration.

    :param email: Raw email.
    :param username: Raw username.
    :param password: Raw password, checked against the password policy.
    :param confirm_password: Must equal ``password``.
    """

    email: str
    username: str
    password: str
    confirm_password: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param user_id: Authenticated user.
    :type user_id: int
    :param authorization: Raw ``Authorization`` header value.
    :type authorization: str | None
    :param session_id: Session to close; defaults to the one bound to the
        stored refresh token.
    :type session_id: str | None
    """

    user_id: int
    authorization: str | None
    session_id: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginOut:
    """
    Output DTO of a successful login.

    :param expires_in: Access token validity in seconds.
    :param refresh_expires_in: Refresh token validity in seconds.
    :param session_id: Tracked session, ``None`` if the session write failed.
    """

    user_id: int
    email: str
    username: str
    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_in: int
    session_id: str | None = None


@dataclass(frozen=True, slots=True)
class RegisteredUser:
    user_id: int
    email: str
    username: str
    role: str


@dataclass(frozen=True, slots=True)
class LogoutOut:
    success: bool
    message: str


@dataclass(frozen=True, slots=True)
class LogoutAllOut:
    success: bool
    invalidated_sessions: int
    message: str


# ------------------------ Config DTO -------------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)

    @property
    def access_seconds(self) -> int:
        return int(self.access_expires.total_seconds())

    @property
    def refresh_seconds(self) -> int:
        return int(self.refresh_expires.total_seconds())
