# skillpath/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from skillpath.services._shared.dto import ClientInfo


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Encoded refresh JWT.
    :type refresh_token: str
    :param client: Caller fingerprint, recorded on the new token's metadata.
    :type client: ClientInfo
    """

    refresh_token: str
    client: ClientInfo = field(default_factory=ClientInfo)


@dataclass(frozen=True, slots=True)
class RefreshOut:
    """
    Output DTO with the rotated token pair.

    :param expires_in: Access token validity in seconds.
    :param refresh_expires_in: Refresh token validity in seconds.
    """

    user_id: int
    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_in: int


@dataclass(frozen=True, slots=True)
class BlacklistStatus:
    """Diagnostic view of a token; ``token_preview`` never holds the full value."""

    token_preview: str
    is_blacklisted: bool
    is_valid: bool
    user_id: int | None
    expires_at: datetime | None
    reason: str | None
    checked_at: datetime


class WarningSeverity(str, Enum):
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True, slots=True)
class TokenExpirationWarning:
    user_id: int
    expires_at: datetime
    hours_remaining: int
    severity: WarningSeverity


@dataclass(frozen=True, slots=True)
class UserTokenStatistics:
    user_id: int
    active_sessions: int
    active_refresh_tokens: int
    last_token_issued_at: datetime | None
    last_activity_at: datetime | None


class SecurityEventType(str, Enum):
    REFRESH_TOKEN_REUSE = "REFRESH_TOKEN_REUSE"
    BLACKLISTED_TOKEN_USE = "BLACKLISTED_TOKEN_USE"
    DISABLED_ACCOUNT_ACCESS = "DISABLED_ACCOUNT_ACCESS"
