"""Local database bootstrap (schema migrations are out of scope)."""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from shiftpay.core.extensions import db


@click.command("db-init")
@click.option("--drop", is_flag=True, help="Drop existing tables first.")
@with_appcontext
def db_init(drop: bool) -> None:
    """Create all tables for local development."""
    if not (current_app.debug or current_app.testing):
        raise click.UsageError("'flask db-init' is restricted to development and testing.")
    if drop:
        db.drop_all()
    db.create_all()
    click.echo("Database tables created.")
