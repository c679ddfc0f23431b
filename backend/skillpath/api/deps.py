"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from flask import Flask, Response, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from skillpath.core.errors import APIError
from skillpath.services._shared.dto import ClientInfo
from skillpath.services._shared.errors import ErrorCode
from skillpath.services._shared.result import Result
from skillpath.services.auth.dto import AuthTokenConfig
from skillpath.services.auth.logout import LogoutService
from skillpath.services.auth.service import AuthenticationService
from skillpath.services.sessions.dto import SessionPolicy
from skillpath.services.sessions.registry import SessionRegistry
from skillpath.services.tokens.blacklist import TokenBlacklistService
from skillpath.services.tokens.metadata import TokenMetadataService
from skillpath.services.tokens.refresh import TokenRefreshService

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

log = logging.getLogger(__name__)


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            log.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def require_auth(func: F) -> F:
    """Ensure the request carries a valid, non-blacklisted access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        verify_jwt_in_request(optional=False)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_user_id() -> int:
    """Return the authenticated user id from the verified JWT."""

    identity = get_jwt_identity()
    try:
        return int(identity)
    except (TypeError, ValueError) as exc:
        raise APIError(ErrorCode.TOKEN_INVALID, details={"reason": "USER_ID_NOT_FOUND"}) from exc


def unwrap(result: Result[T]) -> T:
    """Return the value of ``Ok`` or raise the :class:`APIError` matching ``Err``."""

    if result.ok:
        return result.value  # type: ignore[union-attr]
    raise APIError.from_failure(result.failure)  # type: ignore[union-attr]


def client_info() -> ClientInfo:
    """Fingerprint of the caller; ``remote_addr`` is already proxy-corrected."""

    return ClientInfo.from_headers(
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )


# --------------------------------------------------------------------------- #
# Service wiring
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class AuthServices:
    """Request-scoped service graph sharing the app-level adapters."""

    auth: AuthenticationService
    refresh: TokenRefreshService
    logout: LogoutService
    sessions: SessionRegistry
    blacklist: TokenBlacklistService
    metadata: TokenMetadataService


def build_services(app: Flask | None = None) -> AuthServices:
    """Assemble the auth services from ``app.extensions`` and config."""

    app = app or current_app
    cache = app.extensions["token_cache"]
    codec = app.extensions["token_codec"]
    cfg = AuthTokenConfig(
        access_expires=app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        refresh_expires=app.config["JWT_REFRESH_TOKEN_EXPIRES"],
    )
    policy = SessionPolicy(
        max_sessions=app.config["SESSION_MAX_CONCURRENT"],
        activity_interval=app.config["SESSION_ACTIVITY_INTERVAL"],
        session_ttl=cfg.refresh_expires,
    )

    blacklist = TokenBlacklistService(token_codec=codec, token_cache=cache)
    metadata = TokenMetadataService(token_cache=cache)
    sessions = SessionRegistry(token_cache=cache, blacklist=blacklist, policy=policy)
    return AuthServices(
        auth=AuthenticationService(
            token_codec=codec,
            token_cache=cache,
            password_hasher=app.extensions["password_hasher"],
            sessions=sessions,
            metadata=metadata,
            token_cfg=cfg,
        ),
        refresh=TokenRefreshService(
            token_codec=codec,
            token_cache=cache,
            blacklist=blacklist,
            sessions=sessions,
            metadata=metadata,
            token_cfg=cfg,
        ),
        logout=LogoutService(
            token_codec=codec, token_cache=cache, blacklist=blacklist, sessions=sessions
        ),
        sessions=sessions,
        blacklist=blacklist,
        metadata=metadata,
    )


def register_blocklist_loader() -> None:
    """Reject blacklisted access tokens at ``verify_jwt_in_request`` time."""

    from skillpath.core.extensions import jwt

    @jwt.token_in_blocklist_loader
    def _is_blacklisted(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]) -> bool:
        codec = current_app.extensions["token_codec"]
        raw = codec.resolve_bearer(request.headers.get("Authorization"))
        if raw is None:
            return False
        blacklist = TokenBlacklistService(
            token_codec=codec,
            token_cache=current_app.extensions["token_cache"],
        )
        return blacklist.is_blacklisted(raw)
