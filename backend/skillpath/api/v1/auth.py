"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, Response, current_app, request

from skillpath.api.deps import (
    build_services,
    client_info,
    current_user_id,
    json_response,
    require_auth,
    timing,
    unwrap,
)
from skillpath.core.errors import APIError
from skillpath.core.extensions import limiter
from skillpath.schemas import (
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
from skillpath.services._shared.errors import ErrorCode
from skillpath.services.auth.dto import LoginIn, LogoutIn, RegisterIn
from skillpath.services.tokens.dto import RefreshIn

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
register_out = RegisterResponseSchema()
login_out = LoginResponseSchema()
refresh_out = RefreshResponseSchema()
logout_out = LogoutResponseSchema()
logout_all_out = LogoutAllResponseSchema()
sessions_out = SessionSummarySchema()


# --------------------------------------------------------------------------- #
# Refresh cookie
# --------------------------------------------------------------------------- #


def _cookie_path() -> str:
    return f"{current_app.config.get('API_BASE_PREFIX', '/api')}/v1/auth"


def _set_refresh_cookie(response: Response, token: str, max_age: int) -> None:
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        token,
        max_age=max_age,
        path=_cookie_path(),
        domain=cfg.get("REFRESH_COOKIE_DOMAIN"),
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


def _clear_refresh_cookie(response: Response) -> None:
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=_cookie_path(),
        domain=cfg.get("REFRESH_COOKIE_DOMAIN"),
        secure=cfg["REFRESH_COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["REFRESH_COOKIE_SAMESITE"],
    )


# --------------------------------------------------------------------------- #
# Rate limits
# --------------------------------------------------------------------------- #


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per 15 minutes"))


def _register_rate_limit() -> str:
    return str(current_app.config.get("AUTH_REGISTER_RATE_LIMIT", "3 per 60 minutes"))


# --------------------------------------------------------------------------- #
# Endpoints
# --------------------------------------------------------------------------- #


@bp.post("/register")
@limiter.limit(_register_rate_limit)
@timing
def register():
    """Register a new user and sign them in."""

    data = register_schema.load(request.get_json(silent=True) or {})
    services = build_services()
    registered = unwrap(
        services.auth.register(
            RegisterIn(
                email=data["email"],
                username=data["username"],
                password=data["password"],
                confirm_password=data["confirm_password"],
            )
        )
    )
    login = unwrap(
        services.auth.login(
            LoginIn(email=registered.email, password=data["password"], client=client_info())
        )
    )
    response = json_response({"data": register_out.dump(login)}, status=201)
    _set_refresh_cookie(response, login.refresh_token, login.refresh_expires_in)
    return response


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Authenticate credentials; the refresh token is set as an HttpOnly cookie."""

    data = login_schema.load(request.get_json(silent=True) or {})
    services = build_services()
    out = unwrap(
        services.auth.login(
            LoginIn(email=data["email"], password=data["password"], client=client_info())
        )
    )
    response = json_response({"data": login_out.dump(out)})
    _set_refresh_cookie(response, out.refresh_token, out.refresh_expires_in)
    return response


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh token from the body or, failing that, the cookie."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    token = data.get("refresh_token") or request.cookies.get(
        current_app.config["REFRESH_COOKIE_NAME"]
    )
    if not token:
        raise APIError(ErrorCode.REFRESH_TOKEN_INVALID, details={"reason": "MISSING_REFRESH_TOKEN"})

    services = build_services()
    out = unwrap(services.refresh.refresh(RefreshIn(refresh_token=token, client=client_info())))
    response = json_response({"data": refresh_out.dump(out)})
    _set_refresh_cookie(response, out.refresh_token, out.refresh_expires_in)
    return response


@bp.post("/logout")
@require_auth
@timing
def logout():
    """End the current session."""

    data = logout_schema.load(request.get_json(silent=True) or {})
    services = build_services()
    out = unwrap(
        services.logout.logout(
            LogoutIn(
                user_id=current_user_id(),
                authorization=request.headers.get("Authorization"),
                session_id=data.get("session_id"),
            )
        )
    )
    response = json_response({"data": logout_out.dump(out)})
    _clear_refresh_cookie(response)
    return response


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """End every session of the authenticated user."""

    services = build_services()
    out = unwrap(
        services.logout.logout_all(current_user_id(), request.headers.get("Authorization"))
    )
    response = json_response({"data": logout_all_out.dump(out)})
    _clear_refresh_cookie(response)
    return response


@bp.get("/sessions")
@require_auth
@timing
def sessions():
    """List the authenticated user's active sessions."""

    services = build_services()
    summary = services.sessions.get_session_summary(current_user_id())
    return json_response({"data": sessions_out.dump(summary)})
