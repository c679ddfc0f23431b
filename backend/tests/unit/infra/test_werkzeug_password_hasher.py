# tests/unit/infra/test_werkzeug_password_hasher.py
from __future__ import annotations

from skillpath.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher


def test_hash_is_salted_and_verifiable():
    hasher = WerkzeugPasswordHasher(method="pbkdf2:sha256:1000")

    first = hasher.hash("Secur3!Pass")
    second = hasher.hash("Secur3!Pass")

    assert first != second
    assert first.startswith("pbkdf2:sha256:1000$")
    assert hasher.verify("Secur3!Pass", first)
    assert not hasher.verify("secur3!pass", first)


def test_verify_tolerates_empty_hash():
    hasher = WerkzeugPasswordHasher(method="pbkdf2:sha256:1000")
    assert hasher.verify("anything", "") is False


def test_app_wires_configured_method(app):
    hasher = app.extensions["password_hasher"]
    assert hasher.method == app.config["PASSWORD_HASH_METHOD"]
