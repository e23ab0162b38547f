"""Shared API helpers for bearer authentication and cross-cutting concerns."""

from __future__ import annotations

import functools
import re
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, abort, current_app, g, jsonify, request

from authlane.core.auth import get_auth_manager
from authlane.core.errors import Unauthorized
from authlane.services._shared.base import BaseService
from authlane.services._shared.errors import ServiceError

F = TypeVar("F", bound=Callable[..., Any])

_BEARER = re.compile(r"Bearer\s+(\S+)\s*", re.IGNORECASE)


def bearer_token() -> str:
    """Extract the credential of an ``Authorization: Bearer <token>`` header.

    :raises Unauthorized: When the header is missing or not a bearer credential.
    """
    header = request.headers.get("Authorization")
    if not header:
        raise Unauthorized("Missing bearer token", code="missing_token")
    match = _BEARER.fullmatch(header.strip())
    if match is None:
        raise Unauthorized("Malformed authorization header", code="malformed_token")
    return match.group(1)


def resolve_guard(name: str | None) -> str:
    """Return a configured guard name, the default one for ``None``; 404 otherwise."""
    manager = get_auth_manager()
    resolved = name or manager.config.default_guard
    if not manager.has_guard(resolved):
        abort(404)
    return resolved


def translate_service_errors(func: F) -> F:
    """Re-raise service-layer errors as RFC 7807 API errors."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except ServiceError as exc:
            raise BaseService.translate_exceptions(exc) from exc

    return wrapper  # type: ignore[return-value]


def require_auth(func: F | None = None, *, guard: str | None = None) -> Any:
    """Verify the bearer token and expose the principal as ``g.principal``.

    The guard is taken from ``guard``, else from a ``guard`` URL parameter,
    else the default guard. Usable bare (``@require_auth``) or with options.
    """

    def decorator(view: F) -> F:
        @functools.wraps(view)
        def wrapper(*args: Any, **kwargs: Any):
            name = resolve_guard(guard or kwargs.get("guard"))
            token = bearer_token()
            try:
                principal = get_auth_manager().verify(name, token)
            except ServiceError as exc:
                raise BaseService.translate_exceptions(exc) from exc
            g.principal = principal
            g.auth_guard = name
            g.auth_token = token
            return view(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorator(func)
    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
