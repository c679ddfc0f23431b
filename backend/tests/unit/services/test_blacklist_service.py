# tests/unit/services/test_blacklist_service.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from freezegun import freeze_time

from skillpath.services._shared.dto import ClientInfo
from skillpath.services._shared.errors import TokenCacheError
from skillpath.services._shared.ports import TokenType
from skillpath.services.tokens.blacklist import REASON_LOGOUT, REASON_TOKEN_REFRESH, REASON_UNKNOWN
from tests.factories.user import UserFactory

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def test_blacklist_token_lives_for_remaining_validity(services, token_codec):
    user = UserFactory()
    with freeze_time(T0) as clock:
        access = token_codec.issue(user, TokenType.ACCESS).value
        assert services.blacklist.blacklist_token(access, REASON_LOGOUT) is True
        assert services.blacklist.is_blacklisted(access)

        clock.tick(timedelta(minutes=15, seconds=1))
        # Entry vanished together with the token's validity
        assert not services.blacklist.is_blacklisted(access)


def test_expired_and_garbage_tokens_are_skipped(services, token_codec):
    user = UserFactory()
    with freeze_time(T0) as clock:
        access = token_codec.issue(user, TokenType.ACCESS).value
        clock.tick(timedelta(hours=1))
        assert services.blacklist.blacklist_token(access) is False

    assert services.blacklist.blacklist_token("garbage") is False
    assert not services.blacklist.is_blacklisted("garbage")


def test_cache_write_failure_is_swallowed(services, token_codec, token_cache, monkeypatch):
    access = token_codec.issue(UserFactory(), TokenType.ACCESS).value

    def boom(*args, **kwargs):
        raise TokenCacheError("down")

    monkeypatch.setattr(token_cache, "blacklist", boom)
    assert services.blacklist.blacklist_token(access) is False


def test_is_blacklisted_fails_closed(services, token_cache, monkeypatch):
    def boom(*args, **kwargs):
        raise TokenCacheError("down")

    monkeypatch.setattr(token_cache, "is_blacklisted", boom)
    assert services.blacklist.is_blacklisted("any.token.value") is True


def test_blacklist_reason(services, token_codec, token_cache, monkeypatch):
    access = token_codec.issue(UserFactory(), TokenType.ACCESS).value
    assert services.blacklist.blacklist_reason(access) is None

    services.blacklist.blacklist_token(access, REASON_TOKEN_REFRESH)
    assert services.blacklist.blacklist_reason(access) == "TOKEN_REFRESH"

    def boom(*args, **kwargs):
        raise TokenCacheError("down")

    monkeypatch.setattr(token_cache, "get_blacklist_entry", boom)
    assert services.blacklist.blacklist_reason(access) == REASON_UNKNOWN


def test_blacklist_token_pair(services, token_codec):
    pair = token_codec.issue_pair(UserFactory())
    assert services.blacklist.blacklist_token_pair(pair.access.value, pair.refresh.value) == (
        True,
        True,
    )


def test_blacklist_all_user_tokens_covers_stored_and_session_tokens(
    services, token_codec, token_cache
):
    user = UserFactory()
    stored = token_codec.issue(user, TokenType.REFRESH).value
    other = token_codec.issue(user, TokenType.REFRESH).value
    token_cache.put_refresh_token(user.id, stored, timedelta(days=7))
    services.sessions.create_session(user.id, stored, ClientInfo("Desktop", "10.0.0.1"))
    services.sessions.create_session(user.id, other, ClientInfo("Mobile", "10.0.0.2"))

    count = services.blacklist.blacklist_all_user_tokens(user.id, "ACCOUNT_DISABLED")

    assert count == 2
    assert services.blacklist.is_blacklisted(stored)
    assert services.blacklist.is_blacklisted(other)
    assert token_cache.get_refresh_token(user.id) is None
    assert token_cache.list_sessions(user.id) == []


def test_get_status_reports_reason_without_leaking_token(services, token_codec):
    user = UserFactory()
    access = token_codec.issue(user, TokenType.ACCESS).value
    services.blacklist.blacklist_token(access, "LOGOUT")

    status = services.blacklist.get_status(access)

    assert status.is_blacklisted is True
    assert status.is_valid is True
    assert status.user_id == user.id
    assert status.reason == "LOGOUT"
    assert status.token_preview == f"{access[:10]}..."
