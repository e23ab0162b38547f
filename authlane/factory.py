"""Assemble the authentication service as a Flask application."""

from __future__ import annotations

from flask import Flask

from authlane.core.config import BaseConfig, get_config
from authlane.core.logger import configure_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """
    Build the app: config, logging, storage, guards, routes, error handlers, CLI.

    The auth manager is created before any blueprint is registered so a
    misconfigured guard aborts startup instead of the first request.
    """
    from authlane import cli
    from authlane.api import init_app as init_api
    from authlane.core import auth, errors, extensions, logger

    app = Flask(__name__, instance_relative_config=instance_relative_config)
    app.config.from_object(config if config is not None else get_config())
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    for component in (extensions, auth, logger):
        component.init_app(app)
    init_api(app)
    errors.init_app(app)
    cli.init_app(app)
    return app
