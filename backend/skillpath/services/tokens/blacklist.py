# skillpath/services/tokens/blacklist.py
from __future__ import annotations

import logging

from skillpath.services._shared.base import BaseService
from skillpath.services._shared.errors import TokenCacheError
from skillpath.services._shared.ports import TokenCache, TokenCodec
from skillpath.services.tokens.dto import BlacklistStatus

log = logging.getLogger(__name__)

REASON_LOGOUT = "LOGOUT"
REASON_TOKEN_REFRESH = "TOKEN_REFRESH"
REASON_UNKNOWN = "UNKNOWN"


class TokenBlacklistService(BaseService):
    """
    Deny-list of token values.

    Entries live exactly as long as the token would have, so the blacklist
    never outgrows the set of still-valid tokens. Write failures are logged
    and swallowed: a lost write leaves the token usable until its natural
    expiry. Reads fail closed.
    """

    def __init__(self, *, token_codec: TokenCodec, token_cache: TokenCache) -> None:
        super().__init__()
        self.tokens = token_codec
        self.cache = token_cache

    def blacklist_token(self, token: str, reason: str = REASON_LOGOUT) -> bool:
        """
        Blacklist ``token`` for its remaining validity.

        :returns: ``True`` when an entry was written; ``False`` for tokens that
            cannot be decoded, are already expired, or on cache failure.
        """
        decoded = self.tokens.decode(token)
        if decoded is None or decoded.expires_at is None:
            log.warning("blacklist.skip_undecodable", extra={"reason": reason})
            return False

        remaining = decoded.expires_at - self.now_utc()
        if remaining.total_seconds() <= 0:
            # Expired tokens are inert already
            log.debug("blacklist.skip_expired", extra={"user_id": decoded.user_id})
            return False

        try:
            self.cache.blacklist(token, remaining, reason)
        except TokenCacheError:
            log.error(
                "blacklist.write_failed",
                extra={"user_id": decoded.user_id, "reason": reason},
                exc_info=True,
            )
            return False

        log.info("blacklist.added", extra={"user_id": decoded.user_id, "reason": reason})
        return True

    def is_blacklisted(self, token: str) -> bool:
        try:
            return self.cache.is_blacklisted(token)
        except TokenCacheError:
            log.error("blacklist.read_failed", exc_info=True)
            return True

    def blacklist_reason(self, token: str) -> str | None:
        """
        Reason recorded for a blacklisted ``token``, ``None`` when it is not listed.

        A cache read failure is reported as ``REASON_UNKNOWN`` so callers still
        treat the token as revoked.
        """
        try:
            entry = self.cache.get_blacklist_entry(token)
        except TokenCacheError:
            log.error("blacklist.read_failed", exc_info=True)
            return REASON_UNKNOWN
        return entry.reason if entry else None

    def blacklist_token_pair(
        self, access_token: str, refresh_token: str, reason: str = REASON_LOGOUT
    ) -> tuple[bool, bool]:
        return (
            self.blacklist_token(access_token, reason),
            self.blacklist_token(refresh_token, reason),
        )

    def blacklist_all_user_tokens(self, user_id: int, reason: str) -> int:
        """
        Revoke every refresh token known for ``user_id``.

        Blacklists the stored refresh token and the refresh token of each
        tracked session, then deletes the refresh record and all sessions.

        :returns: Number of tokens blacklisted.
        """
        try:
            stored = self.cache.get_refresh_token(user_id)
            sessions = self.cache.list_sessions(user_id)
        except TokenCacheError:
            log.error("blacklist.user_lookup_failed", extra={"user_id": user_id}, exc_info=True)
            return 0

        tokens = {s.refresh_token for s in sessions}
        if stored is not None:
            tokens.add(stored.token)
        count = sum(1 for token in tokens if self.blacklist_token(token, reason))

        try:
            self.cache.delete_refresh_token(user_id)
            self.cache.delete_session(user_id)
        except TokenCacheError:
            log.error("blacklist.user_cleanup_failed", extra={"user_id": user_id}, exc_info=True)

        log.warning(
            "blacklist.all_user_tokens count=%s",
            count,
            extra={"user_id": user_id, "reason": reason},
        )
        return count

    def get_status(self, token: str) -> BlacklistStatus:
        decoded = self.tokens.decode(token)
        entry = None
        try:
            entry = self.cache.get_blacklist_entry(token)
        except TokenCacheError:
            log.error("blacklist.read_failed", exc_info=True)
        return BlacklistStatus(
            token_preview=f"{token[:10]}...",
            is_blacklisted=entry is not None,
            is_valid=self.tokens.verify(token),
            user_id=decoded.user_id if decoded else None,
            expires_at=decoded.expires_at if decoded else None,
            reason=entry.reason if entry else None,
            checked_at=self.now_utc(),
        )
