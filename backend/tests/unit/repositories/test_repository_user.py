"""Unit tests for UserRepository."""

import pytest

from skillpath.repositories.user import UserRepository
from tests.factories.user import UserFactory


class TestUserRepository:
    """Ensure ``UserRepository`` performs the directory lookups auth relies on."""

    @pytest.fixture()
    def repo(self, session):
        return UserRepository(session=session)

    def test_get_by_email_is_case_insensitive(self, repo):
        u = UserFactory(email="alice@example.com", username="alice")

        fetched = repo.get_by_email("  Alice@Example.COM ")
        assert fetched is not None
        assert fetched.id == u.id
        assert repo.get_by_email("nobody@example.com") is None

    def test_get_by_username(self, repo):
        u = UserFactory(username="carol")
        assert repo.get_by_username("carol").id == u.id
        assert repo.get_by_username("dave") is None

    def test_exists_checks(self, repo):
        UserFactory(email="bob@example.com", username="bob")

        assert repo.exists_by_email("BOB@example.com")
        assert not repo.exists_by_email("nonexistent@example.com")
        assert repo.exists_by_username("bob")
        assert not repo.exists_by_username("robert")

    def test_add_flushes_primary_key(self, repo, session):
        u = UserFactory.build()
        repo.add(u)
        assert u.id is not None
        session.rollback()
        assert repo.get_by_email(u.email) is None

    def test_lookup_of_generated_addresses(self, repo, faker):
        emails = {faker.unique.email() for _ in range(5)}
        for email in emails:
            UserFactory(email=email)

        for email in emails:
            assert repo.get_by_email(email.upper()).email == email.lower()
