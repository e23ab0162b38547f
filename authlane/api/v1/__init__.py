"""Version 1 of the authentication API."""

from __future__ import annotations

from flask import Blueprint

from .auth import bp as auth_bp

API_VERSION = "v1"

# Guard-scoped routes: /api/v1/auth/<guard>/{login,refresh,logout,...}
REGISTRY: list[tuple[Blueprint, str]] = [(auth_bp, "/auth")]
