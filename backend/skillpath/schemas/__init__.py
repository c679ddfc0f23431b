"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    LoginResponseSchema,
    LoginSchema,
    LogoutAllResponseSchema,
    LogoutResponseSchema,
    LogoutSchema,
    RefreshResponseSchema,
    RefreshSchema,
    RegisterResponseSchema,
    RegisterSchema,
    SessionSummarySchema,
)

__all__ = [
    "LoginSchema",
    "LoginResponseSchema",
    "LogoutSchema",
    "LogoutResponseSchema",
    "LogoutAllResponseSchema",
    "RefreshSchema",
    "RefreshResponseSchema",
    "RegisterSchema",
    "RegisterResponseSchema",
    "SessionSummarySchema",
]
