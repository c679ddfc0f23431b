# skillpath/services/tokens/refresh.py
from __future__ import annotations

import logging

from skillpath.repositories.user import UserRepository
from skillpath.services._shared.base import BaseService
from skillpath.services._shared.errors import ErrorCode, TokenCacheError
from skillpath.services._shared.ports import TokenCache, TokenCodec, TokenPair, TokenType
from skillpath.services._shared.result import Err, Ok, Result
from skillpath.services.auth.dto import AuthTokenConfig
from skillpath.services.sessions.registry import SessionRegistry
from skillpath.services.tokens.blacklist import REASON_TOKEN_REFRESH, TokenBlacklistService
from skillpath.services.tokens.dto import (
    RefreshIn,
    RefreshOut,
    SecurityEventType,
    WarningSeverity,
)
from skillpath.services.tokens.metadata import TokenMetadataService

log = logging.getLogger(__name__)

REASON_ACCOUNT_DISABLED = "ACCOUNT_DISABLED"


class TokenRefreshService(BaseService):
    """
    Refresh token rotation.

    Every successful refresh issues a new pair, swaps the stored refresh token
    atomically and blacklists the old one, so a refresh token is usable once.
    Presenting a token that is valid but no longer stored is treated as reuse
    and recorded as a security event.
    """

    def __init__(
        self,
        *,
        token_codec: TokenCodec,
        token_cache: TokenCache,
        blacklist: TokenBlacklistService,
        sessions: SessionRegistry,
        metadata: TokenMetadataService,
        token_cfg: AuthTokenConfig | None = None,
    ) -> None:
        super().__init__()
        self.tokens = token_codec
        self.cache = token_cache
        self.blacklist = blacklist
        self.sessions = sessions
        self.metadata = metadata
        self.cfg = token_cfg or AuthTokenConfig()

    def refresh(self, dto: RefreshIn) -> Result[RefreshOut]:
        """
        Exchange a refresh token for a new token pair.

        Checks run in a fixed order and the first failure wins: signature and
        expiry, token type, blacklist, subject, stored-token match, user state.

        :param dto: Refresh input.
        :returns: ``Ok(RefreshOut)`` or ``Err`` with ``REFRESH_TOKEN_INVALID``,
            ``TOKEN_MALFORMED``, ``TOKEN_BLACKLISTED``, ``TOKEN_INVALID``,
            ``USER_NOT_FOUND`` or ``ACCOUNT_DISABLED``.
        :raises TokenCacheError: If the stored token cannot be read or swapped.
        """
        token = dto.refresh_token
        if not self.tokens.verify(token):
            return Err.of(ErrorCode.REFRESH_TOKEN_INVALID, reason="VERIFICATION_FAILED")

        decoded = self.tokens.decode(token)
        if decoded is None or decoded.token_type is not TokenType.REFRESH:
            return Err.of(
                ErrorCode.TOKEN_MALFORMED,
                tokenType=decoded.token_type.value if decoded and decoded.token_type else None,
                expected=TokenType.REFRESH.value,
            )

        reason = self.blacklist.blacklist_reason(token)
        if reason == REASON_TOKEN_REFRESH:
            # Burnt by rotation, so this is a replay of a stale token
            self.metadata.record_security_event(
                decoded.user_id,
                SecurityEventType.REFRESH_TOKEN_REUSE,
                WarningSeverity.HIGH,
                "Rotated refresh token presented again",
                dto.client,
            )
            return Err.of(ErrorCode.REFRESH_TOKEN_INVALID, reason="STORED_TOKEN_MISMATCH")
        if reason is not None:
            self.metadata.record_security_event(
                decoded.user_id,
                SecurityEventType.BLACKLISTED_TOKEN_USE,
                WarningSeverity.HIGH,
                "Blacklisted refresh token presented",
                dto.client,
            )
            return Err.of(ErrorCode.TOKEN_BLACKLISTED)

        user_id = decoded.user_id
        if user_id is None:
            return Err.of(ErrorCode.TOKEN_INVALID, reason="USER_ID_NOT_FOUND")

        stored = self.cache.get_refresh_token(user_id)
        if stored is None or not stored.matches(token):
            self.metadata.record_security_event(
                user_id,
                SecurityEventType.REFRESH_TOKEN_REUSE,
                WarningSeverity.HIGH,
                "Refresh token does not match the stored token",
                dto.client,
            )
            return Err.of(ErrorCode.REFRESH_TOKEN_INVALID, reason="STORED_TOKEN_MISMATCH")

        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(user_id)
            if user is None:
                return Err.of(ErrorCode.USER_NOT_FOUND)
            if not user.is_active:
                self.blacklist.blacklist_all_user_tokens(user_id, REASON_ACCOUNT_DISABLED)
                self.metadata.record_security_event(
                    user_id,
                    SecurityEventType.DISABLED_ACCOUNT_ACCESS,
                    WarningSeverity.MEDIUM,
                    "Refresh attempted on a disabled account",
                    dto.client,
                )
                return Err.of(ErrorCode.ACCOUNT_DISABLED)
            pair: TokenPair = self.tokens.issue_pair(user)

        if not self.cache.replace_refresh_token(
            user_id, token, pair.refresh.value, self.cfg.refresh_expires
        ):
            log.warning("refresh.lost_rotation_race", extra={"user_id": user_id})
            return Err.of(ErrorCode.REFRESH_TOKEN_INVALID, reason="CONCURRENT_ROTATION")

        self.blacklist.blacklist_token(token, REASON_TOKEN_REFRESH)
        self.sessions.rotate_session_token(user_id, token, pair.refresh.value)
        self.metadata.save_token_metadata(pair.access, user_id, dto.client)
        self.metadata.save_token_metadata(pair.refresh, user_id, dto.client)

        log.info("refresh.rotated", extra={"user_id": user_id})
        return Ok(
            RefreshOut(
                user_id=user_id,
                access_token=pair.access.value,
                refresh_token=pair.refresh.value,
                expires_in=self.cfg.access_seconds,
                refresh_expires_in=self.cfg.refresh_seconds,
            )
        )

    def can_refresh(self, token: str) -> bool:
        """Cheap pre-check: a valid, non-blacklisted refresh token that is still stored."""
        if not self.tokens.verify(token) or not self.tokens.is_type(token, TokenType.REFRESH):
            return False
        if self.blacklist.is_blacklisted(token):
            return False
        decoded = self.tokens.decode(token)
        if decoded is None or decoded.user_id is None:
            return False
        try:
            stored = self.cache.get_refresh_token(decoded.user_id)
        except TokenCacheError:
            log.error("refresh.lookup_failed", extra={"user_id": decoded.user_id}, exc_info=True)
            return False
        return stored is not None and stored.matches(token)
