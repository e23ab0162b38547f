"""Users for login and token tests."""

from __future__ import annotations

import factory

from authlane.models.user import User
from tests.factories import BaseFactory
from tests.helpers.auth import PASSWORD


class UserFactory(BaseFactory):
    """Active account with a unique email/username; ``password=`` overrides :data:`PASSWORD`."""

    class Meta:
        model = User

    id = None
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    username = factory.Sequence(lambda n: f"user{n}")
    full_name = factory.LazyAttribute(lambda o: o.username.capitalize())
    password_hash = ""
    is_active = True

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        # hashed through the model's write-only setter
        obj.password = extracted or PASSWORD
