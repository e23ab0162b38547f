"""Flask CLI commands for token housekeeping and account bootstrap."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from authlane.core.auth import get_auth_manager
from authlane.core.extensions import db
from authlane.models import User

LOGGER = logging.getLogger(__name__)


@click.group("auth")
@click.option("--verbose", is_flag=True, help="Enable verbose logging for auth commands.")
def auth_cli(verbose: bool) -> None:
    """Authentication maintenance commands."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("authlane").setLevel(level)


@auth_cli.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create the users and token tables when missing."""
    db.create_all()
    click.echo("Schema ready.")


@auth_cli.command("prune-tokens")
@with_appcontext
def prune_tokens_command() -> None:
    """Delete expired token records from the configured store."""
    removed = get_auth_manager().cleanup_expired()
    LOGGER.info("Pruned expired tokens", extra={"event": "auth.prune"})
    click.echo(f"Removed {removed} expired token record(s).")


@auth_cli.command("create-user")
@click.option("--email", required=True)
@click.option("--username", required=True)
@click.option("--full-name", default=None)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_user_command(email: str, username: str, full_name: str | None, password: str) -> None:
    """Create an active user that can log in through the default provider."""
    user = User(email=email, username=username, full_name=full_name)
    user.password = password
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise click.ClickException("A user with that email or username already exists.") from exc
    click.echo(f"Created user {user.id} <{user.email}>.")
