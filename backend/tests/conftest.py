"""Pytest fixtures for the SkillPath auth backend.

Every test gets a fresh application bound to an in-memory SQLite database and
an in-process token cache, so neither rows nor cache entries leak between
cases.
"""

from __future__ import annotations

import os

import pytest

from skillpath.core.config import TestingConfig
from skillpath.core.extensions import db as _db
from skillpath.factory import create_app


@pytest.fixture()
def app():
    """Create a Flask application configured for testing.

    Yields
    ------
    flask.Flask
        Application with :class:`TestingConfig` applied, an active app
        context and the schema created.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    os.environ.pop("REDIS_URL", None)
    application = create_app(TestingConfig, instance_relative_config=False)
    with application.app_context():
        _db.create_all()
        yield application
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def session(app):
    """Return the Flask-scoped SQLAlchemy session of the test app."""
    return _db.session


@pytest.fixture()
def client(app):
    """Return a Flask test client."""
    return app.test_client()


@pytest.fixture()
def token_cache(app):
    """The in-process token cache shared by services and endpoints."""
    return app.extensions["token_cache"]


@pytest.fixture()
def token_codec(app):
    return app.extensions["token_codec"]


@pytest.fixture()
def services(app):
    """Service graph wired exactly like the endpoints wire it."""
    from skillpath.api.deps import build_services

    return build_services(app)


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper when the test uses the database."""
    from tests.factories import SQLAlchemySession

    if "app" in request.fixturenames:
        SQLAlchemySession.set(request.getfixturevalue("session"))
    yield
    SQLAlchemySession.set(None)
