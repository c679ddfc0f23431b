from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from skillpath.models.user import User

BEARER_PREFIX = "Bearer "


class TokenType(str, Enum):
    """Value of the ``type`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class IssuedToken:
    """
    A freshly signed token.

    :ivar value: Encoded JWT.
    :ivar token_type: ACCESS or REFRESH.
    :ivar jti: Unique token identifier, also the token metadata key.
    :ivar issued_at: ``iat`` claim (UTC).
    :ivar expires_at: ``exp`` claim (UTC).
    """

    value: str
    token_type: TokenType
    jti: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class TokenPair:
    access: IssuedToken
    refresh: IssuedToken


@dataclass(frozen=True, slots=True)
class DecodedToken:
    """Claims read back from a token; ``user_id`` is ``None`` for a bad subject."""

    user_id: int | None
    email: str | None
    role: str | None
    token_type: TokenType | None
    jti: str | None
    issued_at: datetime | None
    expires_at: datetime | None


class TokenCodec(Protocol):
    """Port for issuing, verifying and decoding signed tokens."""

    def issue(self, user: User, token_type: TokenType) -> IssuedToken:
        """Sign a token for ``user``; raises ``SigningKeyError`` on key misconfiguration."""
        ...

    def verify(self, token: str) -> bool:
        """Return ``False`` on any structural, signature or expiry failure. Never raises."""
        ...

    def decode(self, token: str) -> DecodedToken | None:
        """Best-effort decode ignoring expiry; ``None`` when unparsable."""
        ...

    def is_type(self, token: str, token_type: TokenType) -> bool: ...

    def validity(self, token_type: TokenType) -> timedelta: ...

    def issue_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access=self.issue(user, TokenType.ACCESS),
            refresh=self.issue(user, TokenType.REFRESH),
        )

    @staticmethod
    def resolve_bearer(header: str | None) -> str | None:
        """Extract the token from an ``Authorization: Bearer <token>`` header."""
        if not header or not header.startswith(BEARER_PREFIX):
            return None
        token = header[len(BEARER_PREFIX) :].strip()
        return token or None
