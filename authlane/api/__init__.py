"""HTTP surface: versioned blueprints mounted under ``API_BASE_PREFIX``."""

from __future__ import annotations

from collections.abc import Iterable

from flask import Blueprint, Flask


def join_prefix(*segments: str) -> str:
    """Join URL segments into a single absolute prefix, ignoring empty parts."""
    parts = [segment.strip("/") for segment in segments if segment.strip("/")]
    return "/" + "/".join(parts)


def mount(app: Flask, version: str, entries: Iterable[tuple[Blueprint, str]]) -> None:
    """Register each ``(blueprint, prefix)`` pair of ``version`` on ``app``."""
    root = app.config.get("API_BASE_PREFIX", "/api")
    for blueprint, prefix in entries:
        app.register_blueprint(blueprint, url_prefix=join_prefix(root, version, prefix))


def init_app(app: Flask) -> None:
    from authlane.api import v1

    mount(app, v1.API_VERSION, v1.REGISTRY)


__all__ = ["init_app", "join_prefix", "mount"]
