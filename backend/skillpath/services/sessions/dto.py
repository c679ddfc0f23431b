# skillpath/services/sessions/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from skillpath.services._shared.ports import SessionRecord

# Invalidation reasons, also used as blacklist reasons
SAME_DEVICE_LOGIN = "SAME_DEVICE_LOGIN"
MAX_SESSIONS_EXCEEDED = "MAX_SESSIONS_EXCEEDED"
SESSION_EXPIRED = "SESSION_EXPIRED"
USER_LOGOUT = "USER_LOGOUT"
USER_LOGOUT_ALL = "USER_LOGOUT_ALL"

# Validation failures
SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
SESSION_ID_MISMATCH = "SESSION_ID_MISMATCH"


@dataclass(frozen=True, slots=True)
class SessionPolicy:
    """
    Concurrent-session policy.

    :param max_sessions: Cap on simultaneously tracked sessions per user.
    :type max_sessions: int
    :param activity_interval: Minimum gap between two ``last_active_at`` writes.
    :type activity_interval: timedelta
    :param session_ttl: Session lifetime; equals the refresh token validity.
    :type session_ttl: timedelta
    """

    max_sessions: int = 3
    activity_interval: timedelta = timedelta(minutes=5)
    session_ttl: timedelta = timedelta(days=7)


@dataclass(frozen=True, slots=True)
class SessionValidation:
    is_valid: bool
    reason: str | None = None
    session: SessionRecord | None = None

    @classmethod
    def valid(cls, session: SessionRecord) -> SessionValidation:
        return cls(is_valid=True, session=session)

    @classmethod
    def invalid(cls, reason: str) -> SessionValidation:
        return cls(is_valid=False, reason=reason)


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Per-user session overview, ordered most recently active first."""

    user_id: int
    active_count: int
    max_sessions: int
    sessions: list[SessionRecord] = field(default_factory=list)
    last_activity_at: datetime | None = None
