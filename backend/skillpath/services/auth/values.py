# skillpath/services/auth/values.py
"""
Validated value objects for registration input.

Each type exposes a ``parse`` smart constructor returning ``Ok(instance)`` or
``Err(Failure)``; none of them raise on invalid input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final

from skillpath.services._shared.errors import ErrorCode
from skillpath.services._shared.result import Err, Ok, Result

# ----------------------------------------------------------------------------
# Email
# ----------------------------------------------------------------------------

EMAIL_MAX_LENGTH: Final[int] = 254
_EMAIL_RE = re.compile(r"^[a-z0-9._%+-]+@[a-z0-9-]+(\.[a-z0-9-]+)*\.[a-z]{2,}$")


@dataclass(frozen=True, slots=True)
class Email:
    """Normalized (trimmed, lowercase) email address."""

    value: str

    @classmethod
    def parse(cls, raw: str | None) -> Result[Email]:
        candidate = (raw or "").strip().lower()
        if not candidate:
            return Err.of(ErrorCode.INVALID_EMAIL, reason="EMPTY")
        if len(candidate) > EMAIL_MAX_LENGTH:
            return Err.of(ErrorCode.INVALID_EMAIL, reason="TOO_LONG")
        if not _EMAIL_RE.match(candidate):
            return Err.of(ErrorCode.INVALID_EMAIL, reason="FORMAT")
        return Ok(cls(candidate))

    @property
    def masked(self) -> str:
        """Log-safe form, e.g. ``a***@example.com``."""
        return mask_email(self.value)

    def __str__(self) -> str:
        return self.value


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


# ----------------------------------------------------------------------------
# Username
# ----------------------------------------------------------------------------

USERNAME_MIN_LENGTH: Final[int] = 2
USERNAME_MAX_LENGTH: Final[int] = 30
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
RESERVED_USERNAMES: Final[frozenset[str]] = frozenset(
    {
        "admin",
        "administrator",
        "root",
        "user",
        "test",
        "guest",
        "system",
        "api",
        "www",
        "mail",
        "ftp",
        "support",
        "help",
        "info",
        "service",
        "null",
        "undefined",
        "void",
        "skillpath",
        "app",
        "application",
    }
)


@dataclass(frozen=True, slots=True)
class Username:
    value: str

    @classmethod
    def parse(cls, raw: str | None) -> Result[Username]:
        candidate = (raw or "").strip()
        if not USERNAME_MIN_LENGTH <= len(candidate) <= USERNAME_MAX_LENGTH:
            return Err.of(ErrorCode.INVALID_USERNAME, reason="LENGTH")
        if not _USERNAME_RE.match(candidate):
            return Err.of(ErrorCode.INVALID_USERNAME, reason="PATTERN")
        if candidate.isdigit():
            return Err.of(ErrorCode.INVALID_USERNAME, reason="NUMERIC_ONLY")
        if candidate.lower() in RESERVED_USERNAMES:
            return Err.of(ErrorCode.INVALID_USERNAME, reason="RESERVED")
        return Ok(cls(candidate))

    def __str__(self) -> str:
        return self.value


# ----------------------------------------------------------------------------
# Password
# ----------------------------------------------------------------------------

PASSWORD_MIN_LENGTH: Final[int] = 8
PASSWORD_MAX_LENGTH: Final[int] = 128
SPECIAL_CHARACTERS: Final[str] = "!@#$%^&*()_+-=[]{}|;:,.<>?"


class PasswordStrength(str, Enum):
    WEAK = "WEAK"
    MEDIUM = "MEDIUM"
    STRONG = "STRONG"


def _has_sequential_run(raw: str, run: int = 3) -> bool:
    """True when ``run`` characters have ascending consecutive code points (``abc``, ``123``)."""
    return any(
        all(ord(raw[i + k + 1]) - ord(raw[i + k]) == 1 for k in range(run - 1))
        for i in range(len(raw) - run + 1)
    )


def _has_repeated_run(raw: str, run: int = 3) -> bool:
    return any(len(set(raw[i : i + run])) == 1 for i in range(len(raw) - run + 1))


@dataclass(frozen=True, slots=True, repr=False)
class Password:
    """
    Raw password that satisfies the password policy.

    The value never appears in ``repr`` so it cannot leak through logs.
    """

    value: str

    def __repr__(self) -> str:
        return "Password(***)"

    @classmethod
    def parse(cls, raw: str | None) -> Result[Password]:
        """
        Check the password policy.

        Rules, in order: length 8–128, at least one upper-case letter, one
        lower-case letter, one digit and one special character, no run of
        three ascending consecutive characters, no run of three identical
        characters. The first violated rule is reported as ``reason``.
        """
        value = raw or ""
        if not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH:
            return Err.of(ErrorCode.INVALID_PASSWORD, reason="LENGTH")
        if not any(c.isupper() for c in value):
            return Err.of(ErrorCode.INVALID_PASSWORD, reason="MISSING_UPPERCASE")
        if not any(c.islower() for c in value):
            return Err.of(ErrorCode.INVALID_PASSWORD, reason="MISSING_LOWERCASE")
        if not any(c.isdigit() for c in value):
            return Err.of(ErrorCode.INVALID_PASSWORD, reason="MISSING_DIGIT")
        if not any(c in SPECIAL_CHARACTERS for c in value):
            return Err.of(ErrorCode.INVALID_PASSWORD, reason="MISSING_SPECIAL")
        if _has_sequential_run(value):
            return Err.of(ErrorCode.INVALID_PASSWORD, reason="SEQUENTIAL_CHARACTERS")
        if _has_repeated_run(value):
            return Err.of(ErrorCode.INVALID_PASSWORD, reason="REPEATED_CHARACTERS")
        return Ok(cls(value))

    @staticmethod
    def strength(raw: str) -> PasswordStrength:
        """Score length and character variety; used for diagnostics only."""
        score = 0
        if len(raw) >= 8:
            score += 1
        if len(raw) >= 12:
            score += 1
        score += sum(
            [
                any(c.isupper() for c in raw),
                any(c.islower() for c in raw),
                any(c.isdigit() for c in raw),
                any(c in SPECIAL_CHARACTERS for c in raw),
            ]
        )
        if _has_sequential_run(raw) or _has_repeated_run(raw):
            score -= 1
        if score >= 6:
            return PasswordStrength.STRONG
        if score >= 4:
            return PasswordStrength.MEDIUM
        return PasswordStrength.WEAK
