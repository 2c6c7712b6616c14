"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class SignupSchema(Schema):
    """Input payload for account creation."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    display_name = fields.String(required=True, validate=validate.Length(min=2, max=50))
    password = fields.String(required=True, validate=validate.Length(min=6, max=40))


class LoginSchema(Schema):
    """Input payload for authenticating a user.

    Password rules are not re-checked here so a failed login never hints at
    the signup policy.
    """

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1))


class UserPublicSchema(Schema):
    """Public representation of the signed-in user."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    display_name = fields.String(required=True)
    created_at = fields.DateTime(allow_none=True)


class MessageSchema(Schema):
    """Plain acknowledgement payload."""

    message = fields.String(required=True)


class LogoutAllSchema(MessageSchema):
    """Acknowledgement of a sign-out-everywhere request."""

    revoked = fields.Integer(required=True)
