"""Problem+JSON (RFC 7807) responses for API and authentication failures."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from authlane.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

# Storage failures the client can do nothing about except retry
_INFRASTRUCTURE_ERRORS: dict[type[Exception], tuple[HTTPStatus, str, str]] = {
    IntegrityError: (HTTPStatus.CONFLICT, "conflict", "Resource conflict"),
    OperationalError: (
        HTTPStatus.SERVICE_UNAVAILABLE,
        "service_unavailable",
        "Token storage temporarily unavailable",
    ),
    RedisError: (
        HTTPStatus.SERVICE_UNAVAILABLE,
        "service_unavailable",
        "Token storage temporarily unavailable",
    ),
}


def status_code_name(status: int) -> str:
    """Snake-case phrase of ``status`` (``404`` -> ``"not_found"``)."""
    try:
        return HTTPStatus(status).phrase.lower().replace(" ", "_").replace("-", "_")
    except ValueError:
        return "error"


def problem(
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> Response:
    """
    Build a problem+json response tagged with the request's correlation id.

    :param status: HTTP status code.
    :param code: Stable machine-readable code; authentication failures use the
        error kind (``expired_token``, ``unknown_token`` ...).
    :param message: Client-safe summary, sent as ``detail``.
    :param details: Optional structured payload, e.g. field validation errors.
    """
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": message,
        "instance": request.path,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        body["details"] = details
    response = jsonify(body)
    response.mimetype = PROBLEM_MIMETYPE
    response.status_code = int(status)
    return response


class APIError(Exception):
    """
    Error raised by views and translated from service errors.

    :param message: Human-readable description presented to clients.
    :param status_code: HTTP status, ``400`` unless a subclass says otherwise.
    :param code: Machine-readable identifier.
    :param details: Optional structured payload included in the response.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}


class Unauthorized(APIError):
    """401 when authentication fails.

    ``code`` carries the authentication failure kind (``expired_token``,
    ``blacklisted_token``...) so clients can decide whether to refresh.
    """

    def __init__(self, message: str = "Unauthorized", code: str = "unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code=code)


class ServerMisconfigured(APIError):
    """500 when a guard references a missing driver, provider or secret."""

    def __init__(self, message: str = "Authentication is misconfigured") -> None:
        super().__init__(
            message,
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="misconfigured_guard",
        )


def init_app(app: Flask) -> None:
    """
    Register problem+json handlers.

    Client errors are logged as warnings, server errors with a traceback.
    Unexpected exceptions never leak their message.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        if err.status_code >= 500:
            log.error("api error %s: %s", err.code, err.message, extra={"kind": err.code})
        else:
            log.warning("api error %s: %s", err.code, err.message, extra={"kind": err.code})
        response = problem(err.status_code, err.code, err.message, err.details)
        if err.status_code == HTTPStatus.UNAUTHORIZED:
            response.headers["WWW-Authenticate"] = f'Bearer error="{err.code}"'
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = status_code_name(status)
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        else:
            message = (err.description or code.replace("_", " ").capitalize()).strip()
        log.warning("http %s on %s", status, request.path)
        return problem(status, code, message)

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        log.warning("request body rejected on %s", request.path)
        return problem(
            HTTPStatus.UNPROCESSABLE_ENTITY,
            "validation_error",
            "Validation failed",
            {"errors": err.messages},
        )

    def handle_infrastructure_error(err: Exception):
        status, code, message = next(
            entry for kind, entry in _INFRASTRUCTURE_ERRORS.items() if isinstance(err, kind)
        )
        log.error("%s on %s", type(err).__name__, request.path, exc_info=err)
        return problem(status, code, message)

    for error_type in _INFRASTRUCTURE_ERRORS:
        app.register_error_handler(error_type, handle_infrastructure_error)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        log.error("unhandled exception on %s", request.path, exc_info=err)
        return problem(
            HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error"
        )
