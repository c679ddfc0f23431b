"""Integration tests for the health endpoint."""

from __future__ import annotations

from skillpath.services._shared.errors import TokenCacheError


def test_health_ok(client) -> None:
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["db"] == "ok"
    assert body["cache"] == "ok"
    assert "version" in body


def test_health_degraded_when_cache_is_down(client, token_cache, monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise TokenCacheError("down")

    monkeypatch.setattr(token_cache, "get_refresh_token", boom)

    resp = client.get("/api/v1/health")

    assert resp.status_code == 503
    assert resp.get_json() == {
        "status": "degraded",
        "db": "ok",
        "cache": "fail",
        "version": resp.get_json()["version"],
    }
