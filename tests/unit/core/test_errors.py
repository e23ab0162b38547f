"""Unit tests for error translation and the RFC 7807 handlers."""

from __future__ import annotations

import pytest

from authlane.core.errors import APIError, ServerMisconfigured, Unauthorized
from authlane.services._shared.base import BaseService
from authlane.services._shared.errors import (
    AuthenticationError,
    AuthErrorKind,
    ServiceError,
    misconfigured,
)


@pytest.mark.parametrize(
    "kind",
    [k for k in AuthErrorKind if k is not AuthErrorKind.MISCONFIGURED_GUARD],
)
def test_auth_failures_become_401_with_kind_as_code(kind):
    err = BaseService.translate_exceptions(AuthenticationError(kind, "nope"))
    assert isinstance(err, Unauthorized)
    assert err.status_code == 401
    assert err.code == kind.value
    assert err.message == "nope"


def test_misconfiguration_becomes_500():
    err = BaseService.translate_exceptions(misconfigured("no secret"))
    assert isinstance(err, ServerMisconfigured)
    assert err.status_code == 500
    assert err.code == "misconfigured_guard"


def test_other_service_errors_become_400():
    err = BaseService.translate_exceptions(ServiceError("bad"))
    assert type(err) is APIError
    assert err.status_code == 400


def test_authentication_error_str_and_args():
    err = AuthenticationError(AuthErrorKind.EXPIRED_TOKEN, "Token has expired")
    assert str(err) == "expired_token: Token has expired"
    assert err.args == ("Token has expired",)
    assert not err.is_configuration_error


def test_unknown_route_is_problem_json(client):
    resp = client.get("/api/v1/nowhere")
    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"
    body = resp.get_json()
    assert body["code"] == "not_found"
    assert body["request_id"] == resp.headers["X-Request-ID"]


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (404, "not_found"),
        (405, "method_not_allowed"),
        (415, "unsupported_media_type"),
        (799, "error"),
    ],
)
def test_status_code_name(status, expected):
    from authlane.core.errors import status_code_name

    assert status_code_name(status) == expected


def test_redis_outage_becomes_503(app):
    from redis.exceptions import ConnectionError as RedisConnectionError

    with app.test_request_context("/api/v1/auth/api/me"):
        resp = app.handle_user_exception(RedisConnectionError("down"))

    assert resp.status_code == 503
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "service_unavailable"
