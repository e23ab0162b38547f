"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import INCLUDE, Schema, fields, post_load, validate


class LoginSchema(Schema):
    """Login payload: a password plus any of the guard's identifying fields.

    Unknown keys are kept so providers can log in by custom columns.
    """

    class Meta:
        unknown = INCLUDE

    email = fields.Email(validate=validate.Length(max=254))
    username = fields.String(validate=validate.Length(min=1, max=50))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))

    @post_load
    def normalize_email(self, data: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        if isinstance(data.get("email"), str):
            data["email"] = data["email"].strip().lower()
        return data


class RefreshSchema(Schema):
    """Input payload for token rotation."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class LogoutSchema(Schema):
    """Optional body of a single-device logout."""

    refresh_token = fields.String(load_default=None)


class TokenResponseSchema(Schema):
    """Serialized :class:`~authlane.services.auth.dto.AuthResponse`."""

    user = fields.Dict(keys=fields.String())
    access_token = fields.String(required=True)
    refresh_token = fields.String(allow_none=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(allow_none=True)
    refresh_expires_in = fields.Integer(allow_none=True)
    metadata = fields.Dict(keys=fields.String())


class PrincipalSchema(Schema):
    """Public view of the authenticated principal."""

    id = fields.Raw()
    attributes = fields.Dict(keys=fields.String(), data_key="user")


class LogoutResultSchema(Schema):
    revoked = fields.Integer()
