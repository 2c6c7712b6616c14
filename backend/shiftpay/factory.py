"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from datetime import timedelta

from flask import Flask

from shiftpay.core.config import BaseConfig, get_config
from shiftpay.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config class, object or import path. Defaults to the class
        selected by ``APP_ENV``.
    :param instance_relative_config: Look for an instance folder override.
    :param instance_config_filename: File loaded from the instance folder.
    """
    app = Flask(__name__, instance_relative_config=instance_relative_config)

    config_obj = get_config() if config is None else config
    validate = getattr(config_obj, "validate", None)
    if callable(validate):
        validate()
    app.config.from_object(config_obj)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    # Single source of truth for the access token lifetime
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(seconds=int(app.config["ACCESS_TOKEN_TTL"]))

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from shiftpay.core import proxy

    proxy.init_app(app)

    from shiftpay.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from shiftpay.core import cors

    cors.init_app(app)

    from shiftpay.api import init_app as init_api

    init_api(app)

    from shiftpay.core import errors

    errors.init_app(app)

    from shiftpay import cli as app_cli

    app_cli.init_app(app)

    return app
