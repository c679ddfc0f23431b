"""Authentication-related Marshmallow schemas.

Wire names are camelCase; attribute names stay snake_case. Format rules for
email, username and password are enforced by the service layer so that each
violation maps to its own error code; these schemas only check presence and
types.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class _InputSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class RegisterSchema(_InputSchema):
    """Input payload for account registration."""

    email = fields.String(required=True, validate=validate.Length(min=1))
    username = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, validate=validate.Length(min=1))
    confirm_password = fields.String(
        required=True, data_key="confirmPassword", validate=validate.Length(min=1)
    )


class LoginSchema(_InputSchema):
    """Input payload for authenticating a user."""

    email = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, validate=validate.Length(min=1))


class RefreshSchema(_InputSchema):
    """Optional body of ``/refresh``; the cookie is used when absent."""

    refresh_token = fields.String(load_default=None, data_key="refreshToken")


class LogoutSchema(_InputSchema):
    session_id = fields.String(load_default=None, data_key="sessionId")


class LoginResponseSchema(Schema):
    """Login payload; the refresh token travels in the cookie only."""

    user_id = fields.Integer(data_key="userId")
    email = fields.String()
    username = fields.String()
    access_token = fields.String(data_key="accessToken")
    token_type = fields.Constant("Bearer", data_key="tokenType")
    expires_in = fields.Integer(data_key="expiresIn")
    session_id = fields.String(data_key="sessionId", allow_none=True)


class RegisterResponseSchema(LoginResponseSchema):
    refresh_token = fields.String(data_key="refreshToken")


class RefreshResponseSchema(Schema):
    user_id = fields.Integer(data_key="userId")
    access_token = fields.String(data_key="accessToken")
    refresh_token = fields.String(data_key="refreshToken")
    token_type = fields.Constant("Bearer", data_key="tokenType")
    expires_in = fields.Integer(data_key="expiresIn")


class LogoutResponseSchema(Schema):
    success = fields.Boolean()
    message = fields.String()


class LogoutAllResponseSchema(LogoutResponseSchema):
    invalidated_sessions = fields.Integer(data_key="invalidatedSessions")


class SessionSchema(Schema):
    """Public view of a session; the bound refresh token is never exposed."""

    session_id = fields.String(data_key="sessionId")
    device_info = fields.String(data_key="deviceInfo")
    ip_address = fields.String(data_key="ipAddress", allow_none=True)
    login_at = fields.DateTime(data_key="loginAt")
    last_active_at = fields.DateTime(data_key="lastActiveAt")


class SessionSummarySchema(Schema):
    user_id = fields.Integer(data_key="userId")
    active_count = fields.Integer(data_key="activeSessionCount")
    max_sessions = fields.Integer(data_key="maxSessions")
    sessions = fields.List(fields.Nested(SessionSchema))
    last_activity_at = fields.DateTime(data_key="lastActivity", allow_none=True)
