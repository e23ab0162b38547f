"""Authentication endpoints, one set per configured guard."""

from __future__ import annotations

from flask import Blueprint, g, request

from authlane.api.deps import (
    bearer_token,
    json_response,
    require_auth,
    resolve_guard,
    timing,
    translate_service_errors,
)
from authlane.core.auth import get_auth_manager
from authlane.schemas import (
    LoginSchema,
    LogoutResultSchema,
    LogoutSchema,
    PrincipalSchema,
    RefreshSchema,
    TokenResponseSchema,
)

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
token_schema = TokenResponseSchema()
principal_schema = PrincipalSchema()
logout_result_schema = LogoutResultSchema()


@bp.post("/<guard>/login")
@timing
@translate_service_errors
def login(guard: str):
    """Exchange credentials for an access/refresh pair."""

    name = resolve_guard(guard)
    credentials = login_schema.load(request.get_json(silent=True) or {})
    tokens = get_auth_manager().login(name, credentials)
    return json_response({"data": token_schema.dump(tokens)})


@bp.post("/<guard>/refresh")
@timing
@translate_service_errors
def refresh(guard: str):
    """Rotate a refresh token."""

    name = resolve_guard(guard)
    payload = refresh_schema.load(request.get_json(silent=True) or {})
    tokens = get_auth_manager().refresh(name, payload["refresh_token"])
    return json_response({"data": token_schema.dump(tokens)})


@bp.post("/<guard>/logout")
@timing
@translate_service_errors
def logout(guard: str):
    """Revoke the presented token's session; expired access tokens are accepted."""

    name = resolve_guard(guard)
    token = bearer_token()
    payload = logout_schema.load(request.get_json(silent=True) or {})
    revoked = get_auth_manager().logout(name, token, refresh_token=payload["refresh_token"])
    return json_response({"data": logout_result_schema.dump({"revoked": revoked})})


@bp.post("/<guard>/logout-all")
@timing
@require_auth
@translate_service_errors
def logout_all(guard: str):
    """Revoke every session of the authenticated principal."""

    revoked = get_auth_manager().logout_all(g.auth_guard, g.auth_token)
    return json_response({"data": logout_result_schema.dump({"revoked": revoked})})


@bp.post("/<guard>/logout-others")
@timing
@require_auth
@translate_service_errors
def logout_others(guard: str):
    """Revoke every session except the current one."""

    revoked = get_auth_manager().logout_others(g.auth_guard, g.auth_token)
    return json_response({"data": logout_result_schema.dump({"revoked": revoked})})


@bp.get("/<guard>/me")
@timing
@require_auth
def me(guard: str):
    """Return the authenticated principal, freshly loaded."""

    return json_response({"data": principal_schema.dump(g.principal)})
