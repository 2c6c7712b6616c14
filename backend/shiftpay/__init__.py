"""Expose the application factory at package level.

``from shiftpay import create_app`` is the supported entry point, e.g.
``flask --app shiftpay:create_app run``.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
