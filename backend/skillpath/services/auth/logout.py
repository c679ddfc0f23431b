# skillpath/services/auth/logout.py
from __future__ import annotations

import logging

from skillpath.services._shared.base import BaseService
from skillpath.services._shared.errors import ErrorCode
from skillpath.services._shared.ports import TokenCache, TokenCodec
from skillpath.services._shared.result import Err, Ok, Result
from skillpath.services.auth.dto import LogoutAllOut, LogoutIn, LogoutOut
from skillpath.services.sessions.dto import USER_LOGOUT, USER_LOGOUT_ALL
from skillpath.services.sessions.registry import SessionRegistry
from skillpath.services.tokens.blacklist import REASON_LOGOUT, TokenBlacklistService

log = logging.getLogger(__name__)


class LogoutService(BaseService):
    """Ends one session or every session of a user."""

    def __init__(
        self,
        *,
        token_codec: TokenCodec,
        token_cache: TokenCache,
        blacklist: TokenBlacklistService,
        sessions: SessionRegistry,
    ) -> None:
        super().__init__()
        self.tokens = token_codec
        self.cache = token_cache
        self.blacklist = blacklist
        self.sessions = sessions

    def logout(self, dto: LogoutIn) -> Result[LogoutOut]:
        """
        Revoke the presented access token and the user's refresh token.

        The session bound to the stored refresh token is always closed. When
        ``dto.session_id`` names another session, that one is invalidated too
        and its own refresh token blacklisted.

        :returns: ``Ok(LogoutOut)`` or ``Err(TOKEN_INVALID)`` with reason
            ``MISSING_BEARER`` or ``REFRESH_TOKEN_NOT_FOUND``.
        :raises TokenCacheError: If the stored refresh token cannot be read.
        """
        access_token = self.tokens.resolve_bearer(dto.authorization)
        if access_token is None:
            return Err.of(ErrorCode.TOKEN_INVALID, reason="MISSING_BEARER")

        stored = self.cache.get_refresh_token(dto.user_id)
        if stored is None:
            return Err.of(ErrorCode.TOKEN_INVALID, reason="REFRESH_TOKEN_NOT_FOUND")

        self.blacklist.blacklist_token_pair(access_token, stored.token, REASON_LOGOUT)
        self.cache.delete_refresh_token(dto.user_id)

        closed: list[str] = []
        bound = self.sessions.find_by_refresh_token(dto.user_id, stored.token)
        if bound is not None:
            self.sessions.remove_session(dto.user_id, bound.session_id)
            closed.append(bound.session_id)
        if dto.session_id is not None and dto.session_id not in closed:
            if self.sessions.invalidate_session(dto.user_id, dto.session_id, USER_LOGOUT):
                closed.append(dto.session_id)

        log.info("auth.logout", extra={"user_id": dto.user_id, "session_id": closed})
        return Ok(LogoutOut(success=True, message="Logged out successfully."))

    def logout_all(self, user_id: int, authorization: str | None = None) -> Result[LogoutAllOut]:
        """
        Sign the user out everywhere.

        Every session is invalidated (its refresh token blacklisted), the
        stored refresh token is blacklisted and cleared, and the presented
        access token, if any, is blacklisted.
        """
        invalidated = self.sessions.invalidate_all_user_sessions(user_id, USER_LOGOUT_ALL)
        self.blacklist.blacklist_all_user_tokens(user_id, USER_LOGOUT_ALL)

        access_token = self.tokens.resolve_bearer(authorization)
        if access_token is not None:
            self.blacklist.blacklist_token(access_token, USER_LOGOUT_ALL)

        log.warning("auth.logout_all sessions=%s", invalidated, extra={"user_id": user_id})
        return Ok(
            LogoutAllOut(
                success=True,
                invalidated_sessions=invalidated,
                message=f"Logged out from {invalidated} session(s).",
            )
        )
