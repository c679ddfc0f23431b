"""JSON log formatting and request correlation."""

from __future__ import annotations

import json
import logging

from skillpath.core.logger import REQUEST_ID_HEADER, JSONFormatter, RequestContextFilter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "skillpath.test", logging.WARNING, __file__, 1, "hello %s", ("x",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_known_extras_only():
    payload = json.loads(
        JSONFormatter().format(_record(user_id=7, event="LOGIN", password="nope"))
    )

    assert payload["level"] == "WARNING"
    assert payload["name"] == "skillpath.test"
    assert payload["message"] == "hello x"
    assert payload["user_id"] == 7
    assert payload["event"] == "LOGIN"
    assert "password" not in payload


def test_request_id_is_echoed(client):
    resp = client.get("/api/v1/health", headers={REQUEST_ID_HEADER: "abc-123"})
    assert resp.headers[REQUEST_ID_HEADER] == "abc-123"


def test_request_id_is_generated_when_missing(client):
    resp = client.get("/api/v1/health")
    assert resp.headers.get(REQUEST_ID_HEADER)


def test_records_inside_a_request_carry_client_and_path(app):
    with app.test_request_context(
        "/api/v1/auth/login", environ_base={"REMOTE_ADDR": "192.0.2.10"}
    ):
        record = _record()
        RequestContextFilter().filter(record)
        payload = json.loads(JSONFormatter().format(record))

    assert payload["client_ip"] == "192.0.2.10"
    assert payload["path"] == "/api/v1/auth/login"
    assert payload["request_id"]
