"""Unit tests for the User and PersonalAccessToken models."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from authlane.models import PersonalAccessToken, User
from authlane.models.base import as_utc
from tests.factories.user import UserFactory


class TestUserModel:
    def test_password_is_hashed_and_write_only(self, session):
        user = UserFactory(password="s3cret!")
        assert user.password_hash and user.password_hash != "s3cret!"
        with pytest.raises(AttributeError):
            _ = user.password

    def test_email_is_normalized(self, session):
        user = UserFactory(email="  Ada@Example.COM ")
        assert user.email == "ada@example.com"

    def test_active_by_default(self, session):
        user = User(email="x@example.com", username="x", password_hash="h")
        session.add(user)
        session.flush()
        session.refresh(user)
        assert user.is_active is True
        assert user.created_at is not None

    def test_email_is_unique(self, session):
        UserFactory(email="dup@example.com")
        with pytest.raises(IntegrityError):
            UserFactory(email="dup@example.com")


class TestPersonalAccessToken:
    def test_metadata_column_and_repr(self, session):
        row = PersonalAccessToken(
            token="s::t",
            principal_id="1",
            guard="api",
            type="refresh",
            created_at=datetime.now(UTC),
            meta={"session_id": "s"},
        )
        session.add(row)
        session.flush()
        assert session.get(PersonalAccessToken, "s::t").meta == {"session_id": "s"}
        assert repr(row) == "<PersonalAccessToken type=refresh guard=api principal=1>"


def test_as_utc():
    naive = datetime(2024, 1, 1, 12, 0)
    assert as_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    assert as_utc(None) is None
