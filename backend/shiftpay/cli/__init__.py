"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .database import db_init
from .sessions import sessions_cli


def init_app(app: Flask) -> None:
    """Register ``flask sessions ...`` and ``flask db-init``."""
    app.cli.add_command(sessions_cli)
    app.cli.add_command(db_init)
