"""
Domain-level error codes and exceptions used within the service layer.

These types are **framework-agnostic** and never import Flask or HTTP helpers.
Expected business failures travel as :class:`ErrorCode` values inside a
:class:`~skillpath.services._shared.result.Failure`; exceptions are reserved
for infrastructure faults (cache outage, signing key misconfiguration).

The translation to HTTP responses is handled by ``skillpath/core/errors.py``.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str, *columns: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL reports the constraint name; SQLite only reports the
    ``table.column`` pair, hence the optional ``columns`` fallback.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').
    columns : str
        Qualified column names (e.g., ``"users.email"``) accepted as a match.

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    return any(col.lower() in message for col in columns)


# --------------------------------------------------------------------------- #
# Error code table
# --------------------------------------------------------------------------- #


class ErrorCode(Enum):
    """
    Stable error catalogue shared by services and the HTTP boundary.

    Each member carries ``(code, status, message)``:

    :ivar code: Short wire identifier (e.g. ``"T002"``).
    :ivar status: HTTP status the boundary responds with.
    :ivar message: Default client-safe message.
    """

    # Common
    INVALID_INPUT_VALUE = ("C001", 400, "Invalid input value.")
    INTERNAL_SERVER_ERROR = ("C002", 500, "Unexpected server error.")
    SERVICE_UNAVAILABLE = ("C003", 503, "Service temporarily unavailable.")
    METHOD_NOT_ALLOWED = ("C004", 405, "Method not allowed.")
    DATA_CONFLICT = ("C005", 409, "Resource conflict.")
    TOO_MANY_REQUESTS = ("C006", 429, "Too many requests. Try again later.")

    # Auth
    UNAUTHORIZED = ("A001", 401, "Authentication is required.")
    FORBIDDEN = ("A002", 403, "Access is denied.")
    AUTHENTICATION_FAILED = ("A003", 401, "Authentication failed.")
    INVALID_CREDENTIALS = ("A004", 401, "Email or password does not match.")
    INVALID_PASSWORD = ("A005", 400, "Password does not satisfy the password policy.")
    PASSWORD_MISMATCH = ("A006", 400, "Password confirmation does not match.")
    ACCOUNT_DISABLED = ("A007", 403, "Account is disabled.")

    # Token
    TOKEN_EXPIRED = ("T001", 401, "Token has expired.")
    TOKEN_INVALID = ("T002", 401, "Token is invalid.")
    TOKEN_MALFORMED = ("T003", 401, "Token is malformed.")
    TOKEN_BLACKLISTED = ("T004", 401, "Token has been revoked.")
    REFRESH_TOKEN_INVALID = ("T005", 401, "Refresh token is invalid.")
    SESSION_INVALID = ("T006", 401, "Session is no longer valid.")

    # User
    USER_NOT_FOUND = ("U001", 404, "User not found.")
    DUPLICATE_EMAIL = ("U002", 409, "Email is already registered.")
    DUPLICATE_USERNAME = ("U003", 409, "Username is already taken.")
    INVALID_EMAIL = ("U004", 400, "Email address is invalid.")
    INVALID_USERNAME = ("U005", 400, "Username is invalid.")

    # Resource
    RESOURCE_NOT_FOUND = ("R001", 404, "Requested resource was not found.")

    def __init__(self, code: str, status: int, message: str) -> None:
        self.code = code
        self.status = status
        self.message = message


# --------------------------------------------------------------------------- #
# Exceptions (infrastructure faults only)
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - Business outcomes are returned as ``Err`` values instead.
    """

    pass


class TokenCacheError(ServiceError):
    """Raised by cache adapters when the backing store cannot be reached."""


class SigningKeyError(ServiceError):
    """Raised when tokens cannot be signed because the key is misconfigured."""
