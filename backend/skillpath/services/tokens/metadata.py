# skillpath/services/tokens/metadata.py
from __future__ import annotations

import logging
from datetime import timedelta

from skillpath.services._shared.base import BaseService
from skillpath.services._shared.dto import ClientInfo
from skillpath.services._shared.errors import TokenCacheError
from skillpath.services._shared.ports import IssuedToken, TokenCache, TokenMetadata
from skillpath.services.tokens.dto import (
    SecurityEventType,
    TokenExpirationWarning,
    UserTokenStatistics,
    WarningSeverity,
)

log = logging.getLogger(__name__)

WARNING_WINDOW = timedelta(hours=24)
HIGH_THRESHOLD = timedelta(hours=6)
CRITICAL_THRESHOLD = timedelta(hours=1)


class TokenMetadataService(BaseService):
    """
    Audit trail for issued tokens plus per-user token diagnostics.

    Metadata is informational: failures to write it never fail the caller.
    """

    def __init__(self, *, token_cache: TokenCache) -> None:
        super().__init__()
        self.cache = token_cache

    def save_token_metadata(
        self, issued: IssuedToken, user_id: int, client: ClientInfo | None = None
    ) -> str | None:
        """
        Store metadata for ``issued`` under its ``jti``.

        :returns: The token id, or ``None`` if the token is already expired or
            the cache write failed.
        """
        remaining = issued.expires_at - self.now_utc()
        if remaining.total_seconds() <= 0:
            return None
        client = client or ClientInfo()
        metadata = TokenMetadata(
            token_id=issued.jti,
            user_id=user_id,
            token_type=issued.token_type.value,
            issued_at=issued.issued_at,
            expires_at=issued.expires_at,
            device_info=client.device_info,
            ip_address=client.ip_address,
        )
        try:
            self.cache.put_token_metadata(issued.jti, metadata, remaining)
        except TokenCacheError:
            log.error("token_meta.write_failed", extra={"user_id": user_id}, exc_info=True)
            return None
        return issued.jti

    def get_token_metadata(self, token_id: str) -> TokenMetadata | None:
        try:
            return self.cache.get_token_metadata(token_id)
        except TokenCacheError:
            log.error("token_meta.read_failed", exc_info=True)
            return None

    def get_user_token_statistics(self, user_id: int) -> UserTokenStatistics:
        try:
            stored = self.cache.get_refresh_token(user_id)
            sessions = self.cache.list_sessions(user_id)
        except TokenCacheError:
            log.error("token_meta.stats_failed", extra={"user_id": user_id}, exc_info=True)
            stored, sessions = None, []
        return UserTokenStatistics(
            user_id=user_id,
            active_sessions=len(sessions),
            active_refresh_tokens=1 if stored else 0,
            last_token_issued_at=stored.created_at if stored else None,
            last_activity_at=max((s.last_active_at for s in sessions), default=None),
        )

    def check_token_expiration_warning(self, user_id: int) -> TokenExpirationWarning | None:
        """
        Warn when the user's refresh token expires within 24 hours.

        Severity is CRITICAL within 1 hour, HIGH within 6 hours, else MEDIUM.
        """
        try:
            stored = self.cache.get_refresh_token(user_id)
        except TokenCacheError:
            log.error("token_meta.read_failed", extra={"user_id": user_id}, exc_info=True)
            return None
        if stored is None:
            return None

        remaining = stored.expires_at - self.now_utc()
        if remaining <= timedelta(0) or remaining > WARNING_WINDOW:
            return None

        if remaining <= CRITICAL_THRESHOLD:
            severity = WarningSeverity.CRITICAL
        elif remaining <= HIGH_THRESHOLD:
            severity = WarningSeverity.HIGH
        else:
            severity = WarningSeverity.MEDIUM
        return TokenExpirationWarning(
            user_id=user_id,
            expires_at=stored.expires_at,
            hours_remaining=int(remaining.total_seconds() // 3600),
            severity=severity,
        )

    def record_security_event(
        self,
        user_id: int | None,
        event_type: SecurityEventType,
        severity: WarningSeverity,
        description: str,
        client: ClientInfo | None = None,
    ) -> None:
        client = client or ClientInfo()
        log.warning(
            "security_event severity=%s device=%s ip=%s: %s",
            severity.value,
            client.device_info,
            client.ip_address,
            description,
            extra={"user_id": user_id, "event": event_type.value},
        )
