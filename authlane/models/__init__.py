from authlane.models.token import PersonalAccessToken
from authlane.models.user import User

__all__ = ["PersonalAccessToken", "User"]
