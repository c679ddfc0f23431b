# tests/unit/infra/test_jwt_token_codec.py
from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token
from freezegun import freeze_time

from skillpath.services._shared.errors import SigningKeyError
from skillpath.services._shared.ports import TokenCodec, TokenType
from tests.factories.user import UserFactory

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def test_issue_access_token_carries_identity_and_role(token_codec):
    user = UserFactory(email="ada@example.com")

    issued = token_codec.issue(user, TokenType.ACCESS)
    decoded = token_codec.decode(issued.value)

    assert decoded.user_id == user.id
    assert decoded.email == "ada@example.com"
    assert decoded.role == "USER"
    assert decoded.token_type is TokenType.ACCESS
    assert decoded.jti == issued.jti
    assert issued.expires_at - issued.issued_at == timedelta(minutes=15)


def test_refresh_token_has_no_role_claim(token_codec):
    user = UserFactory()

    issued = token_codec.issue(user, TokenType.REFRESH)
    decoded = token_codec.decode(issued.value)

    assert decoded.role is None
    assert decoded.token_type is TokenType.REFRESH
    assert token_codec.is_type(issued.value, TokenType.REFRESH)
    assert not token_codec.is_type(issued.value, TokenType.ACCESS)
    assert issued.expires_at - issued.issued_at == timedelta(days=7)


def test_issue_pair_yields_distinct_tokens(token_codec):
    pair = token_codec.issue_pair(UserFactory())
    assert pair.access.value != pair.refresh.value
    assert pair.access.jti != pair.refresh.jti


def test_verify_rejects_expired_tokens_but_decode_still_reads_them(token_codec):
    user = UserFactory()
    with freeze_time(T0) as clock:
        issued = token_codec.issue(user, TokenType.ACCESS)
        assert token_codec.verify(issued.value)

        clock.tick(timedelta(minutes=15, seconds=1))
        assert not token_codec.verify(issued.value)
        assert token_codec.decode(issued.value).user_id == user.id


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_verify_and_decode_never_raise(token_codec, garbage):
    assert token_codec.verify(garbage) is False
    assert token_codec.decode(garbage) is None


def test_verify_rejects_foreign_signature(app, token_codec):
    issued = token_codec.issue(UserFactory(), TokenType.ACCESS)
    app.config["JWT_SECRET_KEY"] = "a-completely-different-secret-key-0123456789"
    assert token_codec.verify(issued.value) is False
    assert token_codec.decode(issued.value) is None


def test_non_numeric_subject_decodes_without_user_id(token_codec):
    token = create_access_token(identity="not-a-number")
    assert token_codec.decode(token).user_id is None


def test_missing_signing_key_raises_signing_key_error(app, token_codec):
    user = UserFactory()
    app.config["JWT_SECRET_KEY"] = None
    app.config["SECRET_KEY"] = None
    with pytest.raises(SigningKeyError):
        token_codec.issue(user, TokenType.ACCESS)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("Bearer   ", None),
        ("Basic dXNlcg==", None),
        (None, None),
    ],
)
def test_resolve_bearer(header, expected):
    assert TokenCodec.resolve_bearer(header) == expected
