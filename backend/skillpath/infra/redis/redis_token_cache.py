# comments in English; reST docstrings
from __future__ import annotations

import functools
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar, cast

import redis
from redis.exceptions import RedisError

from skillpath.services._shared.errors import TokenCacheError
from skillpath.services._shared.ports import (
    BlacklistEntry,
    RefreshTokenRecord,
    SessionRecord,
    TokenCache,
    TokenMetadata,
    token_hash,
)
from skillpath.services._shared.ports.token_cache import (
    BLACKLIST_PREFIX,
    REFRESH_TOKEN_PREFIX,
    TOKEN_META_PREFIX,
    USER_SESSION_PREFIX,
    ttl_seconds,
)

# WATCH/EXEC attempts before a contended swap is reported as a cache failure
MAX_CAS_RETRIES = 5

F = TypeVar("F", bound=Callable[..., Any])


def _wrap_redis_errors(func: F) -> F:
    """Re-raise client/connection failures as :class:`TokenCacheError`."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except RedisError as exc:
            raise TokenCacheError(f"{func.__name__} failed: {exc}") from exc

    return cast(F, wrapper)


def _b(value: bytes | str | None, default: str = "") -> str:
    """Decode helper for values returned without ``decode_responses``."""
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisTokenCache(TokenCache):
    """
    Redis-backed token cache.

    Layout
    ------
    - ``refresh_token:<uid>``: hash ``{token, user_id, created_at, expires_at}``.
    - ``blacklist:<sha256>``: JSON ``{tokenHash, blacklistedAt, reason}``.
    - ``user_session:<uid>``: hash ``session_id -> JSON {session, expires_at}``.
      The key TTL tracks the longest-lived session; expired members are
      pruned on read.
    - ``token_meta:<jti>``: hash of :class:`TokenMetadata` fields.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k_refresh(user_id: int) -> str:
        return f"{REFRESH_TOKEN_PREFIX}{user_id}"

    @staticmethod
    def _k_blacklist(token: str) -> str:
        return f"{BLACKLIST_PREFIX}{token_hash(token)}"

    @staticmethod
    def _k_sessions(user_id: int) -> str:
        return f"{USER_SESSION_PREFIX}{user_id}"

    @staticmethod
    def _k_meta(token_id: str) -> str:
        return f"{TOKEN_META_PREFIX}{token_id}"

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def _refresh_mapping(self, user_id: int, token: str, ttl: timedelta) -> dict[str, str]:
        now = self._now()
        return {
            "token": token,
            "user_id": str(user_id),
            "created_at": str(now.timestamp()),
            "expires_at": str((now + timedelta(seconds=ttl_seconds(ttl))).timestamp()),
        }

    # -------------------- refresh tokens --------------------

    @_wrap_redis_errors
    def put_refresh_token(self, user_id: int, token: str, ttl: timedelta) -> None:
        key = self._k_refresh(user_id)
        pipe = self.r.pipeline(transaction=True)
        pipe.delete(key)
        pipe.hset(key, mapping=self._refresh_mapping(user_id, token, ttl))
        pipe.expire(key, ttl_seconds(ttl))
        pipe.execute()

    @_wrap_redis_errors
    def get_refresh_token(self, user_id: int) -> RefreshTokenRecord | None:
        h = self.r.hgetall(self._k_refresh(user_id))
        if not h:
            return None
        return RefreshTokenRecord(
            token=_b(h.get(b"token")),
            user_id=int(_b(h.get(b"user_id"), "0")),
            created_at=datetime.fromtimestamp(float(_b(h.get(b"created_at"), "0")), tz=UTC),
            expires_at=datetime.fromtimestamp(float(_b(h.get(b"expires_at"), "0")), tz=UTC),
        )

    @_wrap_redis_errors
    def delete_refresh_token(self, user_id: int) -> None:
        self.r.delete(self._k_refresh(user_id))

    @_wrap_redis_errors
    def replace_refresh_token(
        self, user_id: int, expected: str, new_token: str, ttl: timedelta
    ) -> bool:
        """
        Compare-and-swap the stored refresh token.

        Uses WATCH/MULTI/EXEC (optimistic locking): if another client touches
        the key between the read and the EXEC, the transaction aborts and the
        comparison is retried against the fresh value, at most
        ``MAX_CAS_RETRIES`` times.

        :raises TokenCacheError: If every attempt was aborted by a concurrent write.
        """
        key = self._k_refresh(user_id)
        for _attempt in range(MAX_CAS_RETRIES):
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    current = p.hget(key, "token")
                    if current is None or _b(current) != expected:
                        p.unwatch()
                        return False
                    p.multi()
                    p.delete(key)
                    p.hset(key, mapping=self._refresh_mapping(user_id, new_token, ttl))
                    p.expire(key, ttl_seconds(ttl))
                    p.execute()
                return True
            except redis.WatchError:
                # Concurrent modification detected; retry loop
                continue
        raise TokenCacheError(
            f"replace_refresh_token gave up after {MAX_CAS_RETRIES} concurrent modifications"
        )

    # -------------------- blacklist --------------------

    @_wrap_redis_errors
    def blacklist(self, token: str, ttl: timedelta, reason: str = "LOGOUT") -> None:
        entry = {
            "tokenHash": token_hash(token),
            "blacklistedAt": self._now().timestamp(),
            "reason": reason,
        }
        self.r.set(self._k_blacklist(token), json.dumps(entry), ex=ttl_seconds(ttl))

    @_wrap_redis_errors
    def is_blacklisted(self, token: str) -> bool:
        return cast(int, self.r.exists(self._k_blacklist(token))) == 1

    @_wrap_redis_errors
    def get_blacklist_entry(self, token: str) -> BlacklistEntry | None:
        raw = self.r.get(self._k_blacklist(token))
        if raw is None:
            return None
        data = json.loads(_b(raw))
        return BlacklistEntry(
            token_hash=data["tokenHash"],
            blacklisted_at=datetime.fromtimestamp(float(data["blacklistedAt"]), tz=UTC),
            reason=data.get("reason", "LOGOUT"),
        )

    # -------------------- sessions --------------------

    def _load_sessions(self, user_id: int) -> dict[str, tuple[SessionRecord, float]]:
        key = self._k_sessions(user_id)
        now_ts = self._now().timestamp()
        live: dict[str, tuple[SessionRecord, float]] = {}
        stale: list[str] = []
        for field, raw in self.r.hgetall(key).items():
            sid = _b(field)
            data = json.loads(_b(raw))
            expires_at = float(data["expires_at"])
            if expires_at <= now_ts:
                stale.append(sid)
                continue
            live[sid] = (SessionRecord.from_dict(data["session"]), expires_at)
        if stale:
            # Remove expired members in one call
            self.r.hdel(key, *stale)
        return live

    @_wrap_redis_errors
    def put_session(self, user_id: int, session: SessionRecord, ttl: timedelta) -> None:
        key = self._k_sessions(user_id)
        expires_at = self._now().timestamp() + ttl_seconds(ttl)
        payload = json.dumps({"session": session.to_dict(), "expires_at": expires_at})
        current_ttl = cast(int, self.r.ttl(key))
        pipe = self.r.pipeline(transaction=True)
        pipe.hset(key, session.session_id, payload)
        # The hash lives as long as its longest-lived member
        if current_ttl < ttl_seconds(ttl):
            pipe.expire(key, ttl_seconds(ttl))
        pipe.execute()

    @_wrap_redis_errors
    def list_sessions(self, user_id: int) -> list[SessionRecord]:
        return [record for record, _ in self._load_sessions(user_id).values()]

    @_wrap_redis_errors
    def get_session(self, user_id: int, session_id: str | None = None) -> SessionRecord | None:
        sessions = self._load_sessions(user_id)
        if session_id is not None:
            found = sessions.get(session_id)
            return found[0] if found else None
        records = [record for record, _ in sessions.values()]
        return max(records, key=lambda s: s.last_active_at, default=None)

    @_wrap_redis_errors
    def delete_session(self, user_id: int, session_id: str | None = None) -> None:
        key = self._k_sessions(user_id)
        if session_id is None:
            self.r.delete(key)
        else:
            self.r.hdel(key, session_id)

    # -------------------- token metadata --------------------

    @_wrap_redis_errors
    def put_token_metadata(self, token_id: str, metadata: TokenMetadata, ttl: timedelta) -> None:
        key = self._k_meta(token_id)
        mapping = {k: "" if v is None else str(v) for k, v in metadata.to_dict().items()}
        pipe = self.r.pipeline(transaction=True)
        pipe.hset(key, mapping=mapping)
        pipe.expire(key, ttl_seconds(ttl))
        pipe.execute()

    @_wrap_redis_errors
    def get_token_metadata(self, token_id: str) -> TokenMetadata | None:
        h = self.r.hgetall(self._k_meta(token_id))
        if not h:
            return None
        return TokenMetadata.from_dict({_b(k): _b(v) for k, v in h.items()})
