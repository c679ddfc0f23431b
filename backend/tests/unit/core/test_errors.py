"""Error body shape for every path that ends in an error response."""

from __future__ import annotations

import pytest
from flask import Blueprint

from skillpath.core.errors import APIError
from skillpath.services._shared.errors import ErrorCode, TokenCacheError
from skillpath.services._shared.result import Failure


@pytest.fixture
def failing_client(app):
    bp = Blueprint("failing", __name__)

    @bp.get("/api-error")
    def api_error():
        raise APIError(ErrorCode.ACCOUNT_DISABLED, details={"reason": "LOCKED"})

    @bp.get("/cache-down")
    def cache_down():
        raise TokenCacheError("redis unreachable")

    @bp.get("/boom")
    def boom():
        raise RuntimeError("secret internals")

    app.register_blueprint(bp, url_prefix="/_test")
    return app.test_client()


def test_api_error_body(failing_client):
    resp = failing_client.get("/_test/api-error", headers={"X-Request-ID": "req-123"})

    assert resp.status_code == 403
    assert resp.get_json() == {
        "status": 403,
        "code": "A007",
        "error": "ACCOUNT_DISABLED",
        "message": "Account is disabled.",
        "details": {"reason": "LOCKED"},
        "request_id": "req-123",
    }


def test_cache_outage_is_service_unavailable(failing_client):
    resp = failing_client.get("/_test/cache-down")

    assert resp.status_code == 503
    assert resp.get_json()["code"] == "C003"


def test_unexpected_error_hides_internals(failing_client):
    resp = failing_client.get("/_test/boom")

    body = resp.get_json()
    assert resp.status_code == 500
    assert body["code"] == "C002"
    assert "secret" not in body["message"]
    assert "details" not in body


def test_unknown_route_and_wrong_method(client):
    missing = client.get("/api/v1/nope")
    wrong = client.get("/api/v1/auth/login")

    assert missing.status_code == 404
    assert missing.get_json()["code"] == "R001"
    assert wrong.status_code == 405
    assert wrong.get_json()["code"] == "C004"


def test_from_failure_keeps_code_and_details():
    err = APIError.from_failure(Failure(ErrorCode.TOKEN_MALFORMED, {"expected": "refresh"}))

    assert err.status_code == 401
    assert err.code == "T003"
    assert err.details == {"expected": "refresh"}
    assert err.message == "Token is malformed."


def test_error_codes_are_unique():
    codes = [member.code for member in ErrorCode]
    assert len(codes) == len(set(codes))
