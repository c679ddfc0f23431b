# tests/unit/services/test_refresh_service.py
"""Refresh token rotation: success path and every rejection in check order."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from skillpath.services._shared.dto import ClientInfo
from skillpath.services._shared.errors import ErrorCode
from skillpath.services._shared.ports import TokenType
from skillpath.services.auth.dto import LoginIn
from skillpath.services.tokens.blacklist import REASON_LOGOUT
from skillpath.services.tokens.dto import RefreshIn
from tests.factories.user import DEFAULT_PASSWORD, UserFactory

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
CLIENT = ClientInfo("Desktop", "10.0.0.1", "ua")


@pytest.fixture
def user():
    return UserFactory()


def _login(services, user):
    result = services.auth.login(LoginIn(user.email, DEFAULT_PASSWORD, CLIENT))
    assert result.ok
    return result.value


def test_refresh_rotates_pair_and_burns_old_token(services, token_cache, user):
    login = _login(services, user)

    result = services.refresh.refresh(RefreshIn(login.refresh_token, CLIENT))

    assert result.ok
    out = result.value
    assert out.user_id == user.id
    assert out.refresh_token != login.refresh_token
    assert out.expires_in == 900
    assert out.refresh_expires_in == 7 * 24 * 3600
    assert token_cache.get_refresh_token(user.id).token == out.refresh_token
    assert services.blacklist.get_status(login.refresh_token).reason == "TOKEN_REFRESH"

    # Same session, new token bound to it
    (session,) = services.sessions.get_active_sessions(user.id)
    assert session.session_id == login.session_id
    assert session.refresh_token == out.refresh_token


def test_old_token_cannot_be_replayed(services, user, caplog):
    login = _login(services, user)
    assert services.refresh.refresh(RefreshIn(login.refresh_token)).ok

    replay = services.refresh.refresh(RefreshIn(login.refresh_token))

    assert not replay.ok
    assert replay.code is ErrorCode.REFRESH_TOKEN_INVALID
    assert replay.details == {"reason": "STORED_TOKEN_MISMATCH"}
    assert any(getattr(r, "event", None) == "REFRESH_TOKEN_REUSE" for r in caplog.records)


def test_refresh_token_revoked_by_logout_is_blacklisted(services, token_cache, user):
    login = _login(services, user)
    services.blacklist.blacklist_token(login.refresh_token, REASON_LOGOUT)

    result = services.refresh.refresh(RefreshIn(login.refresh_token))

    assert result.code is ErrorCode.TOKEN_BLACKLISTED
    # Still the stored token, but the blacklist check fires first
    assert token_cache.get_refresh_token(user.id).token == login.refresh_token


def test_unverifiable_token(services):
    result = services.refresh.refresh(RefreshIn("not-a-jwt"))
    assert result.code is ErrorCode.REFRESH_TOKEN_INVALID
    assert result.details == {"reason": "VERIFICATION_FAILED"}


def test_expired_refresh_token_fails_verification(services, user):
    with freeze_time(T0) as clock:
        login = _login(services, user)
        clock.tick(timedelta(days=7, seconds=1))

        result = services.refresh.refresh(RefreshIn(login.refresh_token))

    assert result.code is ErrorCode.REFRESH_TOKEN_INVALID


def test_access_token_is_rejected_as_malformed(services, user):
    login = _login(services, user)

    result = services.refresh.refresh(RefreshIn(login.access_token))

    assert result.code is ErrorCode.TOKEN_MALFORMED
    assert result.details == {"tokenType": "access", "expected": "refresh"}


def test_token_not_matching_stored_one_is_reuse(services, token_codec, user, caplog):
    _login(services, user)
    # Valid, never blacklisted, but not the token the server holds
    foreign = token_codec.issue(user, TokenType.REFRESH).value

    result = services.refresh.refresh(RefreshIn(foreign))

    assert result.code is ErrorCode.REFRESH_TOKEN_INVALID
    assert result.details == {"reason": "STORED_TOKEN_MISMATCH"}
    assert any(getattr(r, "event", None) == "REFRESH_TOKEN_REUSE" for r in caplog.records)


def test_missing_stored_token(services, token_codec, user):
    token = token_codec.issue(user, TokenType.REFRESH).value
    result = services.refresh.refresh(RefreshIn(token))
    assert result.details == {"reason": "STORED_TOKEN_MISMATCH"}


def test_deleted_user(services, token_cache, token_codec, session, user):
    token = token_codec.issue(user, TokenType.REFRESH).value
    token_cache.put_refresh_token(user.id, token, timedelta(days=7))
    session.delete(user)
    session.commit()

    result = services.refresh.refresh(RefreshIn(token))

    assert result.code is ErrorCode.USER_NOT_FOUND


def test_disabled_account_revokes_everything(services, token_cache, session, user):
    login = _login(services, user)
    user.is_active = False
    session.commit()

    result = services.refresh.refresh(RefreshIn(login.refresh_token))

    assert result.code is ErrorCode.ACCOUNT_DISABLED
    assert token_cache.get_refresh_token(user.id) is None
    assert token_cache.list_sessions(user.id) == []
    assert services.blacklist.is_blacklisted(login.refresh_token)


def test_lost_rotation_race(services, token_cache, user, monkeypatch):
    login = _login(services, user)
    monkeypatch.setattr(token_cache, "replace_refresh_token", lambda *a, **kw: False)

    result = services.refresh.refresh(RefreshIn(login.refresh_token))

    assert result.code is ErrorCode.REFRESH_TOKEN_INVALID
    assert result.details == {"reason": "CONCURRENT_ROTATION"}
    # The presented token is not burnt by the losing request
    assert not services.blacklist.is_blacklisted(login.refresh_token)


def test_can_refresh(services, user):
    login = _login(services, user)

    assert services.refresh.can_refresh(login.refresh_token)
    assert not services.refresh.can_refresh(login.access_token)
    assert not services.refresh.can_refresh("garbage")

    services.refresh.refresh(RefreshIn(login.refresh_token))
    assert not services.refresh.can_refresh(login.refresh_token)
