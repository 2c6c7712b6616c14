"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import LoginSchema, LogoutAllSchema, MessageSchema, SignupSchema, UserPublicSchema

__all__ = [
    "LoginSchema",
    "LogoutAllSchema",
    "MessageSchema",
    "SignupSchema",
    "UserPublicSchema",
]
