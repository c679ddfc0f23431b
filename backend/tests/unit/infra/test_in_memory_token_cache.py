# tests/unit/infra/test_in_memory_token_cache.py
"""Unit tests for the process-local token cache (expiry driven by freezegun)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from skillpath.services._shared.ports import InMemoryTokenCache, SessionRecord, token_hash

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def cache():
    return InMemoryTokenCache()


def _session(user_id: int, sid: str, *, active: datetime = T0, token: str = "rt") -> SessionRecord:
    return SessionRecord(
        user_id=user_id,
        session_id=sid,
        device_info="Desktop",
        ip_address="10.0.0.1",
        user_agent="ua",
        login_at=T0,
        last_active_at=active,
        refresh_token=token,
    )


def test_refresh_token_expires_with_ttl(cache):
    with freeze_time(T0) as clock:
        cache.put_refresh_token(1, "token-a", timedelta(seconds=60))
        record = cache.get_refresh_token(1)
        assert record is not None
        assert record.matches("token-a")
        assert record.expires_at == T0 + timedelta(seconds=60)

        clock.tick(timedelta(seconds=61))
        assert cache.get_refresh_token(1) is None


def test_replace_refresh_token_is_compare_and_swap(cache):
    cache.put_refresh_token(1, "old", timedelta(minutes=5))

    assert cache.replace_refresh_token(1, "stale", "new", timedelta(minutes=5)) is False
    assert cache.get_refresh_token(1).token == "old"

    assert cache.replace_refresh_token(1, "old", "new", timedelta(minutes=5)) is True
    assert cache.get_refresh_token(1).token == "new"


def test_replace_refresh_token_without_stored_value(cache):
    assert cache.replace_refresh_token(9, "any", "new", timedelta(minutes=5)) is False
    assert cache.get_refresh_token(9) is None


def test_blacklist_entry_keyed_by_hash(cache):
    with freeze_time(T0) as clock:
        cache.blacklist("some.jwt.value", timedelta(seconds=30), reason="LOGOUT")
        entry = cache.get_blacklist_entry("some.jwt.value")
        assert entry.token_hash == token_hash("some.jwt.value")
        assert entry.reason == "LOGOUT"
        assert cache.is_blacklisted("some.jwt.value")
        assert not cache.is_blacklisted("other.jwt.value")

        clock.tick(timedelta(seconds=31))
        assert not cache.is_blacklisted("some.jwt.value")


def test_non_positive_ttl_is_clamped_to_one_second(cache):
    with freeze_time(T0) as clock:
        cache.blacklist("t", timedelta(seconds=-5))
        assert cache.is_blacklisted("t")
        clock.tick(timedelta(seconds=2))
        assert not cache.is_blacklisted("t")


def test_sessions_are_listed_and_expire_individually(cache):
    with freeze_time(T0) as clock:
        cache.put_session(1, _session(1, "a"), timedelta(minutes=1))
        cache.put_session(1, _session(1, "b"), timedelta(minutes=10))
        assert {s.session_id for s in cache.list_sessions(1)} == {"a", "b"}

        clock.tick(timedelta(minutes=2))
        assert [s.session_id for s in cache.list_sessions(1)] == ["b"]


def test_get_session_without_id_returns_most_recent(cache):
    cache.put_session(1, _session(1, "old", active=T0), timedelta(days=1))
    cache.put_session(1, _session(1, "new", active=T0 + timedelta(hours=1)), timedelta(days=1))

    assert cache.get_session(1).session_id == "new"
    assert cache.get_session(1, "old").session_id == "old"
    assert cache.get_session(1, "missing") is None


def test_delete_session_one_or_all(cache):
    cache.put_session(1, _session(1, "a"), timedelta(days=1))
    cache.put_session(1, _session(1, "b"), timedelta(days=1))

    cache.delete_session(1, "a")
    assert [s.session_id for s in cache.list_sessions(1)] == ["b"]

    cache.delete_session(1)
    assert cache.list_sessions(1) == []


def test_emptied_session_buckets_are_dropped(cache):
    with freeze_time(T0) as clock:
        cache.put_session(1, _session(1, "a"), timedelta(days=1))
        cache.delete_session(1, "a")
        assert 1 not in cache._sessions

        cache.put_session(2, _session(2, "b"), timedelta(minutes=1))
        clock.tick(timedelta(minutes=2))
        assert cache.list_sessions(2) == []
        assert 2 not in cache._sessions
