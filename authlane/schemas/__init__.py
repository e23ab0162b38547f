from authlane.schemas.auth import (
    LoginSchema,
    LogoutResultSchema,
    LogoutSchema,
    PrincipalSchema,
    RefreshSchema,
    TokenResponseSchema,
)

__all__ = [
    "LoginSchema",
    "LogoutResultSchema",
    "LogoutSchema",
    "PrincipalSchema",
    "RefreshSchema",
    "TokenResponseSchema",
]
