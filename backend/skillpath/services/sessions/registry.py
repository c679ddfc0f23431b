# skillpath/services/sessions/registry.py
from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from skillpath.services._shared.base import BaseService
from skillpath.services._shared.dto import ClientInfo
from skillpath.services._shared.errors import TokenCacheError
from skillpath.services._shared.ports import SessionRecord, TokenCache
from skillpath.services.sessions.dto import (
    MAX_SESSIONS_EXCEEDED,
    SAME_DEVICE_LOGIN,
    SESSION_EXPIRED,
    SESSION_ID_MISMATCH,
    SESSION_NOT_FOUND,
    USER_LOGOUT,
    USER_LOGOUT_ALL,
    SessionPolicy,
    SessionSummary,
    SessionValidation,
)
from skillpath.services.tokens.blacklist import TokenBlacklistService

log = logging.getLogger(__name__)


class SessionRegistry(BaseService):
    """
    Tracks logged-in devices per user and enforces the concurrent-session policy.

    Sessions live in the token cache with a TTL equal to the refresh token
    validity. Each session remembers the refresh token it was opened with, so
    invalidating a session also revokes that token.

    Cache failures are logged and swallowed; session tracking never blocks
    authentication.
    """

    def __init__(
        self,
        *,
        token_cache: TokenCache,
        blacklist: TokenBlacklistService,
        policy: SessionPolicy | None = None,
    ) -> None:
        super().__init__()
        self.cache = token_cache
        self.blacklist = blacklist
        self.policy = policy or SessionPolicy()

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def create_session(
        self, user_id: int, refresh_token: str, client: ClientInfo | None = None
    ) -> SessionRecord | None:
        """
        Open a new session bound to ``refresh_token``.

        Before saving, a session from the same device and IP is invalidated,
        then the least recently active sessions are evicted until there is
        room under ``policy.max_sessions``.

        :returns: The stored session, or ``None`` if the cache write failed.
        """
        client = client or ClientInfo()
        now = self.now_utc()
        session = SessionRecord(
            user_id=user_id,
            session_id=str(uuid.uuid4()),
            device_info=client.device_info,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            login_at=now,
            last_active_at=now,
            refresh_token=refresh_token,
        )
        try:
            self._enforce_policy(user_id, session)
            self.cache.put_session(user_id, session, self.policy.session_ttl)
        except TokenCacheError:
            log.error("session.create_failed", extra={"user_id": user_id}, exc_info=True)
            return None

        log.info(
            "session.created device=%s",
            session.device_info,
            extra={"user_id": user_id, "session_id": session.session_id},
        )
        return session

    def _enforce_policy(self, user_id: int, incoming: SessionRecord) -> None:
        remaining: list[SessionRecord] = []
        for existing in self.cache.list_sessions(user_id):
            if (
                existing.device_info == incoming.device_info
                and existing.ip_address == incoming.ip_address
            ):
                self._invalidate(existing, SAME_DEVICE_LOGIN)
            else:
                remaining.append(existing)

        if len(remaining) < self.policy.max_sessions:
            return
        # Oldest activity goes first
        remaining.sort(key=lambda s: s.last_active_at)
        overflow = len(remaining) - self.policy.max_sessions + 1
        for stale in remaining[:overflow]:
            self._invalidate(stale, MAX_SESSIONS_EXCEEDED)

    def _invalidate(self, session: SessionRecord, reason: str) -> None:
        self.blacklist.blacklist_token(session.refresh_token, reason)
        self.cache.delete_session(session.user_id, session.session_id)
        log.info(
            "session.invalidated",
            extra={"user_id": session.user_id, "session_id": session.session_id, "reason": reason},
        )

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_active_sessions(self, user_id: int) -> list[SessionRecord]:
        """Return live sessions, most recently active first."""
        try:
            sessions = self.cache.list_sessions(user_id)
        except TokenCacheError:
            log.error("session.list_failed", extra={"user_id": user_id}, exc_info=True)
            return []
        return sorted(sessions, key=lambda s: s.last_active_at, reverse=True)

    def get_session_summary(self, user_id: int) -> SessionSummary:
        sessions = self.get_active_sessions(user_id)
        return SessionSummary(
            user_id=user_id,
            active_count=len(sessions),
            max_sessions=self.policy.max_sessions,
            sessions=sessions,
            last_activity_at=sessions[0].last_active_at if sessions else None,
        )

    # ------------------------------------------------------------------ #
    # Activity and validation
    # ------------------------------------------------------------------ #

    def update_session_activity(self, user_id: int, session_id: str) -> bool:
        """
        Touch ``last_active_at`` of a session.

        The write only happens once ``policy.activity_interval`` has elapsed
        since the previous one.

        :returns: ``True`` if the session exists, whether or not it was written.
        """
        try:
            session = self.cache.get_session(user_id, session_id)
            if session is None:
                log.warning(
                    "session.activity_unknown", extra={"user_id": user_id, "session_id": session_id}
                )
                return False
            self._touch(session)
        except TokenCacheError:
            log.error("session.activity_failed", extra={"user_id": user_id}, exc_info=True)
            return False
        return True

    def _touch(self, session: SessionRecord) -> None:
        now = self.now_utc()
        if now - session.last_active_at < self.policy.activity_interval:
            return
        self.cache.put_session(
            session.user_id, replace(session, last_active_at=now), self.policy.session_ttl
        )
        log.debug(
            "session.activity_updated",
            extra={"user_id": session.user_id, "session_id": session.session_id},
        )

    def validate_session(self, user_id: int, session_id: str) -> SessionValidation:
        """
        Check that ``session_id`` is a live session of ``user_id``.

        Reasons: ``SESSION_NOT_FOUND`` when the user has no session,
        ``SESSION_ID_MISMATCH`` when none of them has this id and
        ``SESSION_EXPIRED`` when it outlived the refresh validity (the
        session is invalidated on the spot).
        """
        try:
            sessions = self.cache.list_sessions(user_id)
            if not sessions:
                return SessionValidation.invalid(SESSION_NOT_FOUND)

            session = next((s for s in sessions if s.session_id == session_id), None)
            if session is None:
                return SessionValidation.invalid(SESSION_ID_MISMATCH)

            if self.now_utc() - session.login_at > self.policy.session_ttl:
                self._invalidate(session, SESSION_EXPIRED)
                return SessionValidation.invalid(SESSION_EXPIRED)

            self._touch(session)
        except TokenCacheError:
            log.error("session.validate_failed", extra={"user_id": user_id}, exc_info=True)
            return SessionValidation.invalid(SESSION_NOT_FOUND)
        return SessionValidation.valid(session)

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    def invalidate_session(self, user_id: int, session_id: str, reason: str = USER_LOGOUT) -> bool:
        """Blacklist the session's refresh token and delete the session."""
        try:
            session = self.cache.get_session(user_id, session_id)
            if session is None:
                return False
            self._invalidate(session, reason)
        except TokenCacheError:
            log.error("session.invalidate_failed", extra={"user_id": user_id}, exc_info=True)
            return False
        return True

    def remove_session(self, user_id: int, session_id: str) -> None:
        """Delete a session without touching its refresh token."""
        try:
            self.cache.delete_session(user_id, session_id)
        except TokenCacheError:
            log.error("session.remove_failed", extra={"user_id": user_id}, exc_info=True)

    def invalidate_all_user_sessions(self, user_id: int, reason: str = USER_LOGOUT_ALL) -> int:
        """
        Invalidate every session of ``user_id``.

        :returns: Number of sessions invalidated.
        """
        try:
            sessions = self.cache.list_sessions(user_id)
            for session in sessions:
                self.blacklist.blacklist_token(session.refresh_token, reason)
            self.cache.delete_session(user_id)
        except TokenCacheError:
            log.error("session.invalidate_all_failed", extra={"user_id": user_id}, exc_info=True)
            return 0
        log.info(
            "session.invalidated_all count=%s",
            len(sessions),
            extra={"user_id": user_id, "reason": reason},
        )
        return len(sessions)

    def find_by_refresh_token(self, user_id: int, refresh_token: str) -> SessionRecord | None:
        try:
            sessions = self.cache.list_sessions(user_id)
        except TokenCacheError:
            log.error("session.list_failed", extra={"user_id": user_id}, exc_info=True)
            return None
        return next((s for s in sessions if s.refresh_token == refresh_token), None)

    def rotate_session_token(self, user_id: int, old_token: str, new_token: str) -> bool:
        """
        Move the session bound to ``old_token`` onto ``new_token``.

        The session keeps its id and login time; ``last_active_at`` is set to
        now and the TTL restarts from the rotation.
        """
        session = self.find_by_refresh_token(user_id, old_token)
        if session is None:
            log.debug("session.rotate_no_session", extra={"user_id": user_id})
            return False
        rotated = replace(session, refresh_token=new_token, last_active_at=self.now_utc())
        try:
            self.cache.put_session(user_id, rotated, self.policy.session_ttl)
        except TokenCacheError:
            log.error("session.rotate_failed", extra={"user_id": user_id}, exc_info=True)
            return False
        return True
