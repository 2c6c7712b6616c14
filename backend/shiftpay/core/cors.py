"""CORS policy for the cookie-authenticated API."""

from __future__ import annotations

import logging

from flask import Flask
from flask_cors import CORS

from shiftpay.core.logger import REQUEST_ID_HEADER

log = logging.getLogger(__name__)


def init_app(app: Flask) -> None:
    """Allow the configured front-end origins to call ``/api/*`` with cookies.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS`` (comma-separated) and
        ``CORS_MAX_AGE`` settings are consulted.

    Notes
    -----
    Session cookies require ``supports_credentials``, which browsers reject
    together with ``*``. A wildcard or empty origin list therefore disables
    credentialed cross-origin calls.
    """
    raw_origins = app.config.get("CORS_ORIGINS", "")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    wildcard = len(origins) == 0 or "*" in origins
    if wildcard:
        log.warning("cors.wildcard credentials disabled for cross-origin requests")

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        supports_credentials=not wildcard,
        expose_headers=[REQUEST_ID_HEADER],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
