"""Reverse-proxy awareness for the WSGI app."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Trust ``X-Forwarded-*`` headers from ``PROXY_FIX_HOPS`` upstream proxies.

    ``request.scheme`` must reflect the client's HTTPS connection when TLS is
    terminated upstream, otherwise ``Secure`` session cookies and redirects
    are built for plain HTTP. ``PROXY_FIX_HOPS = 0`` disables the middleware.
    """
    hops = int(app.config.get("PROXY_FIX_HOPS", 1))
    if hops > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)
