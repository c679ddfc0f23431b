from __future__ import annotations

import hashlib
import hmac
import threading
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

# Key namespaces shared by every adapter
REFRESH_TOKEN_PREFIX = "refresh_token:"
BLACKLIST_PREFIX = "blacklist:"
USER_SESSION_PREFIX = "user_session:"
TOKEN_META_PREFIX = "token_meta:"


def token_hash(token: str) -> str:
    """Return the SHA-256 hex digest used as blacklist key."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def ttl_seconds(ttl: timedelta) -> int:
    """Whole seconds for a cache TTL, never below one."""
    return max(1, int(ttl.total_seconds()))


def _ts(dt: datetime) -> float:
    return dt.timestamp()


def _dt(value: float | str | None) -> datetime | None:
    if value is None or value == "":
        return None
    return datetime.fromtimestamp(float(value), tz=UTC)


# --------------------------------------------------------------------------- #
# Records
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Server-side copy of a user's current refresh token.

    :ivar token: Encoded refresh JWT.
    :ivar user_id: Owner.
    :ivar created_at: When it was stored.
    :ivar expires_at: Token expiry (UTC).
    """

    token: str
    user_id: int
    created_at: datetime
    expires_at: datetime

    def matches(self, token: str) -> bool:
        """Constant-time comparison against a presented token."""
        return hmac.compare_digest(self.token.encode("utf-8"), token.encode("utf-8"))


@dataclass(frozen=True, slots=True)
class BlacklistEntry:
    token_hash: str
    blacklisted_at: datetime
    reason: str


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """
    A logged-in device/client.

    ``refresh_token`` is the refresh token bound to the session; it is
    blacklisted when the session is invalidated.
    """

    user_id: int
    session_id: str
    device_info: str
    ip_address: str | None
    user_agent: str | None
    login_at: datetime
    last_active_at: datetime
    refresh_token: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["login_at"] = _ts(self.login_at)
        data["last_active_at"] = _ts(self.last_active_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        return cls(
            user_id=int(data["user_id"]),
            session_id=str(data["session_id"]),
            device_info=str(data["device_info"]),
            ip_address=data.get("ip_address"),
            user_agent=data.get("user_agent"),
            login_at=_dt(data["login_at"]),  # type: ignore[arg-type]
            last_active_at=_dt(data["last_active_at"]),  # type: ignore[arg-type]
            refresh_token=str(data["refresh_token"]),
        )


@dataclass(frozen=True, slots=True)
class TokenMetadata:
    """Audit record for an issued token; ``token_id`` is the token ``jti``."""

    token_id: str
    user_id: int
    token_type: str
    issued_at: datetime
    expires_at: datetime
    device_info: str | None = None
    ip_address: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["issued_at"] = _ts(self.issued_at)
        data["expires_at"] = _ts(self.expires_at)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenMetadata:
        return cls(
            token_id=str(data["token_id"]),
            user_id=int(data["user_id"]),
            token_type=str(data["token_type"]),
            issued_at=_dt(data["issued_at"]),  # type: ignore[arg-type]
            expires_at=_dt(data["expires_at"]),  # type: ignore[arg-type]
            device_info=data.get("device_info") or None,
            ip_address=data.get("ip_address") or None,
        )


# --------------------------------------------------------------------------- #
# Port
# --------------------------------------------------------------------------- #


class TokenCache(Protocol):
    """
    Key-value store for refresh tokens, blacklist, sessions and token metadata.

    Every write carries an explicit TTL; entries disappear on their own.
    Adapters raise :class:`~skillpath.services._shared.errors.TokenCacheError`
    when the backing store fails.
    """

    # refresh_token:<userId>
    def put_refresh_token(self, user_id: int, token: str, ttl: timedelta) -> None: ...

    def get_refresh_token(self, user_id: int) -> RefreshTokenRecord | None: ...

    def delete_refresh_token(self, user_id: int) -> None: ...

    def replace_refresh_token(
        self, user_id: int, expected: str, new_token: str, ttl: timedelta
    ) -> bool:
        """
        Atomically swap the stored token for ``new_token`` if it still equals
        ``expected``. Returns ``False`` when another writer got there first.
        """
        ...

    # blacklist:<sha256(token)>
    def blacklist(self, token: str, ttl: timedelta, reason: str = "LOGOUT") -> None: ...

    def is_blacklisted(self, token: str) -> bool: ...

    def get_blacklist_entry(self, token: str) -> BlacklistEntry | None: ...

    # user_session:<userId>
    def put_session(self, user_id: int, session: SessionRecord, ttl: timedelta) -> None: ...

    def get_session(self, user_id: int, session_id: str | None = None) -> SessionRecord | None:
        """Return ``session_id``, or the most recently active session when omitted."""
        ...

    def list_sessions(self, user_id: int) -> list[SessionRecord]: ...

    def delete_session(self, user_id: int, session_id: str | None = None) -> None:
        """Delete one session, or all of the user's sessions when ``session_id`` is omitted."""
        ...

    # token_meta:<tokenId>
    def put_token_metadata(
        self, token_id: str, metadata: TokenMetadata, ttl: timedelta
    ) -> None: ...

    def get_token_metadata(self, token_id: str) -> TokenMetadata | None: ...


# --------------------------------------------------------------------------- #
# In-memory implementation
# --------------------------------------------------------------------------- #


class InMemoryTokenCache(TokenCache):
    """
    Process-local cache used by tests and single-process development servers.

    Expiry is evaluated lazily against the wall clock on every read.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._values: dict[str, tuple[Any, datetime]] = {}
        self._sessions: dict[int, dict[str, tuple[SessionRecord, datetime]]] = {}

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def _set(self, key: str, value: Any, ttl: timedelta) -> None:
        expires_at = self._now() + timedelta(seconds=ttl_seconds(ttl))
        with self._lock:
            self._values[key] = (value, expires_at)

    def _get(self, key: str) -> Any | None:
        with self._lock:
            item = self._values.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at <= self._now():
                del self._values[key]
                return None
            return value

    def _delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    # ---- refresh tokens ----------------------------------------------------

    def put_refresh_token(self, user_id: int, token: str, ttl: timedelta) -> None:
        now = self._now()
        record = RefreshTokenRecord(
            token=token,
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds(ttl)),
        )
        self._set(f"{REFRESH_TOKEN_PREFIX}{user_id}", record, ttl)

    def get_refresh_token(self, user_id: int) -> RefreshTokenRecord | None:
        return self._get(f"{REFRESH_TOKEN_PREFIX}{user_id}")

    def delete_refresh_token(self, user_id: int) -> None:
        self._delete(f"{REFRESH_TOKEN_PREFIX}{user_id}")

    def replace_refresh_token(
        self, user_id: int, expected: str, new_token: str, ttl: timedelta
    ) -> bool:
        with self._lock:
            current = self.get_refresh_token(user_id)
            if current is None or not current.matches(expected):
                return False
            self.put_refresh_token(user_id, new_token, ttl)
            return True

    # ---- blacklist ---------------------------------------------------------

    def blacklist(self, token: str, ttl: timedelta, reason: str = "LOGOUT") -> None:
        digest = token_hash(token)
        entry = BlacklistEntry(token_hash=digest, blacklisted_at=self._now(), reason=reason)
        self._set(f"{BLACKLIST_PREFIX}{digest}", entry, ttl)

    def is_blacklisted(self, token: str) -> bool:
        return self.get_blacklist_entry(token) is not None

    def get_blacklist_entry(self, token: str) -> BlacklistEntry | None:
        return self._get(f"{BLACKLIST_PREFIX}{token_hash(token)}")

    # ---- sessions ----------------------------------------------------------

    def put_session(self, user_id: int, session: SessionRecord, ttl: timedelta) -> None:
        expires_at = self._now() + timedelta(seconds=ttl_seconds(ttl))
        with self._lock:
            self._sessions.setdefault(user_id, {})[session.session_id] = (session, expires_at)

    def list_sessions(self, user_id: int) -> list[SessionRecord]:
        now = self._now()
        with self._lock:
            bucket = self._sessions.get(user_id, {})
            for sid in [sid for sid, (_, exp) in bucket.items() if exp <= now]:
                del bucket[sid]
            if not bucket:
                self._sessions.pop(user_id, None)
            return [record for record, _ in bucket.values()]

    def get_session(self, user_id: int, session_id: str | None = None) -> SessionRecord | None:
        sessions = self.list_sessions(user_id)
        if session_id is None:
            return max(sessions, key=lambda s: s.last_active_at, default=None)
        return next((s for s in sessions if s.session_id == session_id), None)

    def delete_session(self, user_id: int, session_id: str | None = None) -> None:
        with self._lock:
            if session_id is None:
                self._sessions.pop(user_id, None)
            else:
                bucket = self._sessions.get(user_id, {})
                bucket.pop(session_id, None)
                if not bucket:
                    self._sessions.pop(user_id, None)

    # ---- token metadata ----------------------------------------------------

    def put_token_metadata(self, token_id: str, metadata: TokenMetadata, ttl: timedelta) -> None:
        self._set(f"{TOKEN_META_PREFIX}{token_id}", metadata, ttl)

    def get_token_metadata(self, token_id: str) -> TokenMetadata | None:
        return self._get(f"{TOKEN_META_PREFIX}{token_id}")
