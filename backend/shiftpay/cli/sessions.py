"""Flask CLI commands for refresh session administration."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from shiftpay.api.deps import get_auth_service
from shiftpay.core.extensions import REFRESH_STORE_KEY, db
from shiftpay.repositories.user import UserRepository

LOGGER = logging.getLogger(__name__)


def _user_id_for(email: str) -> str:
    user = UserRepository(session=db.session).get_by_email(email)
    if user is None:
        raise click.BadParameter(f"no user with email {email!r}", param_hint="EMAIL")
    return user.id


@click.group("sessions")
def sessions_cli() -> None:
    """Inspect and revoke refresh sessions."""


@sessions_cli.command("list")
@click.argument("email")
@with_appcontext
def list_sessions(email: str) -> None:
    """Show the live refresh sessions of EMAIL (token prefix and expiry only)."""
    user_id = _user_id_for(email)
    records = current_app.extensions[REFRESH_STORE_KEY].list_for_user(user_id)
    if not records:
        click.echo("No active sessions.")
        return
    for record in records:
        click.echo(
            f"  {record.token[:8]}...  created={record.created_at.isoformat()}"
            f"  expires={record.expires_at.isoformat()}"
        )


@sessions_cli.command("revoke")
@click.argument("email")
@with_appcontext
def revoke_sessions(email: str) -> None:
    """Revoke every refresh session of EMAIL (sign out everywhere)."""
    user_id = _user_id_for(email)
    count = get_auth_service().logout_all(user_id)
    LOGGER.info("cli.sessions.revoke user_id=%s revoked=%s", user_id, count)
    click.echo(f"Revoked {count} session(s).")
