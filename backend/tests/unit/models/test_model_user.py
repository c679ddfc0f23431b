"""Tests for the User model."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from skillpath.models.user import User, UserRole
from tests.factories.user import UserFactory

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


class TestUser:
    def test_defaults_after_insert(self, session):
        u = User(email="Grace@Example.com ", username=" grace ", password_hash="h")
        session.add(u)
        session.commit()

        assert u.email == "grace@example.com"
        assert u.username == "grace"
        assert u.role is UserRole.USER
        assert u.is_active is True
        assert u.email_verified is False
        assert u.last_login_at is None
        assert u.created_at is not None

    def test_email_unique(self, session):
        UserFactory(email="alice@example.com")

        session.add(User(email="ALICE@example.com", username="alice2", password_hash="h"))
        with pytest.raises(IntegrityError):
            session.commit()

    def test_username_unique(self, session):
        UserFactory(username="bob")

        session.add(User(email="b2@example.com", username="bob", password_hash="h"))
        with pytest.raises(IntegrityError):
            session.commit()

    def test_basic_validations(self):
        with pytest.raises(ValueError):
            User(email="", username="u", password_hash="h")
        with pytest.raises(ValueError):
            User(email="no-at-sign", username="u", password_hash="h")
        with pytest.raises(ValueError):
            User(email="x@example.com", username="  ", password_hash="h")

    def test_soft_delete_deactivates(self, session):
        u = UserFactory()

        u.soft_delete(NOW)
        session.commit()

        assert u.is_deleted
        assert u.is_active is False

    def test_deleted_user_cannot_be_reactivated(self):
        u = UserFactory.build()
        u.soft_delete(NOW)

        with pytest.raises(ValueError):
            u.activate()
        with pytest.raises(ValueError):
            u.is_active = True

    def test_deactivate_and_activate(self):
        u = UserFactory.build()
        u.deactivate()
        assert u.is_active is False
        u.activate()
        assert u.is_active is True

    def test_record_login_and_password_change(self):
        u = UserFactory.build()
        u.record_login(NOW)
        assert u.last_login_at == NOW

        u.change_password_hash("new-hash")
        assert u.password_hash == "new-hash"
        with pytest.raises(ValueError):
            u.change_password_hash("")
