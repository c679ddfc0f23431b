# tests/unit/services/test_token_metadata_service.py
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from skillpath.services._shared.dto import ClientInfo
from skillpath.services._shared.ports import TokenType
from skillpath.services.tokens.dto import SecurityEventType, WarningSeverity
from tests.factories.user import UserFactory

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
CLIENT = ClientInfo("Mobile", "198.51.100.4", "ua")


@pytest.fixture
def metadata(services):
    return services.metadata


def test_save_and_read_metadata(metadata, token_codec):
    user = UserFactory()
    issued = token_codec.issue(user, TokenType.ACCESS)

    token_id = metadata.save_token_metadata(issued, user.id, CLIENT)

    assert token_id == issued.jti
    record = metadata.get_token_metadata(issued.jti)
    assert record.user_id == user.id
    assert record.token_type == "access"
    assert record.device_info == "Mobile"
    assert record.ip_address == "198.51.100.4"


def test_metadata_expires_with_the_token(metadata, token_codec):
    user = UserFactory()
    with freeze_time(T0) as clock:
        issued = token_codec.issue(user, TokenType.ACCESS)
        metadata.save_token_metadata(issued, user.id, CLIENT)

        clock.tick(timedelta(minutes=15, seconds=1))
        assert metadata.get_token_metadata(issued.jti) is None
        # Nothing is written for a token that is already expired
        assert metadata.save_token_metadata(issued, user.id, CLIENT) is None


def test_user_token_statistics(metadata, services, token_cache, token_codec):
    user = UserFactory()
    token = token_codec.issue(user, TokenType.REFRESH).value
    token_cache.put_refresh_token(user.id, token, timedelta(days=7))
    services.sessions.create_session(user.id, token, CLIENT)

    stats = metadata.get_user_token_statistics(user.id)

    assert stats.active_sessions == 1
    assert stats.active_refresh_tokens == 1
    assert stats.last_token_issued_at is not None
    assert stats.last_activity_at is not None


@pytest.mark.parametrize(
    ("elapsed", "severity"),
    [
        (timedelta(days=6, hours=1), WarningSeverity.MEDIUM),
        (timedelta(days=6, hours=19), WarningSeverity.HIGH),
        (timedelta(days=6, hours=23, minutes=30), WarningSeverity.CRITICAL),
    ],
)
def test_expiration_warning_severity(metadata, token_cache, elapsed, severity):
    with freeze_time(T0) as clock:
        token_cache.put_refresh_token(5, "rt", timedelta(days=7))
        clock.tick(elapsed)

        warning = metadata.check_token_expiration_warning(5)

    assert warning is not None
    assert warning.severity is severity
    assert warning.expires_at == T0 + timedelta(days=7)


def test_no_warning_when_far_from_expiry_or_missing(metadata, token_cache):
    token_cache.put_refresh_token(5, "rt", timedelta(days=7))
    assert metadata.check_token_expiration_warning(5) is None
    assert metadata.check_token_expiration_warning(6) is None


def test_security_event_is_logged_as_warning(metadata, caplog):
    with caplog.at_level(logging.WARNING, logger="skillpath.services.tokens.metadata"):
        metadata.record_security_event(
            42,
            SecurityEventType.REFRESH_TOKEN_REUSE,
            WarningSeverity.HIGH,
            "Refresh token does not match the stored token",
            CLIENT,
        )

    (record,) = [r for r in caplog.records if r.name == "skillpath.services.tokens.metadata"]
    assert record.levelno == logging.WARNING
    assert record.event == "REFRESH_TOKEN_REUSE"
    assert record.user_id == 42
    assert "198.51.100.4" in record.getMessage()
