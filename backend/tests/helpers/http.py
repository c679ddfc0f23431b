"""Tiny helpers shared across HTTP test modules."""

from __future__ import annotations

from http.cookies import SimpleCookie

from tests.factories.user import DEFAULT_PASSWORD

AUTH_PREFIX = "/api/v1/auth"

DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
MOBILE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148"


def bearer(token: str) -> dict[str, str]:
    """Return an ``Authorization`` header for ``token``."""
    return {"Authorization": f"Bearer {token}"}


def refresh_cookie(response, name: str = "refreshToken"):
    """Parse the refresh cookie out of ``Set-Cookie``.

    Returns
    -------
    http.cookies.Morsel | None
        The cookie morsel (value plus attributes), or ``None`` when absent.
    """
    for header in response.headers.getlist("Set-Cookie"):
        jar = SimpleCookie()
        jar.load(header)
        if name in jar:
            return jar[name]
    return None


def login(
    client,
    email: str,
    password: str = DEFAULT_PASSWORD,
    *,
    user_agent: str = DESKTOP_UA,
    ip: str = "10.0.0.1",
):
    """POST ``/login`` and return the response."""
    return client.post(
        f"{AUTH_PREFIX}/login",
        json={"email": email, "password": password},
        headers={"User-Agent": user_agent},
        environ_base={"REMOTE_ADDR": ip},
    )
