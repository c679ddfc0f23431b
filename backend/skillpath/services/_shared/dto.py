# comments in English; reST docstrings strict
from __future__ import annotations

from dataclasses import dataclass

UNKNOWN_DEVICE = "Unknown"

_TABLET_MARKERS = ("ipad", "tablet")
_MOBILE_MARKERS = ("mobile", "android", "iphone")


def describe_device(user_agent: str | None) -> str:
    """
    Classify a User-Agent string as ``Tablet``, ``Mobile`` or ``Desktop``.

    :param user_agent: Raw ``User-Agent`` header.
    :type user_agent: str | None
    :returns: Coarse device family, ``Unknown`` when the header is missing.
    :rtype: str
    """
    if not user_agent:
        return UNKNOWN_DEVICE
    ua = user_agent.lower()
    # Android tablets omit "mobile"
    if any(marker in ua for marker in _TABLET_MARKERS) or ("android" in ua and "mobile" not in ua):
        return "Tablet"
    if any(marker in ua for marker in _MOBILE_MARKERS):
        return "Mobile"
    return "Desktop"


@dataclass(frozen=True, slots=True)
class ClientInfo:
    """
    Client fingerprint attached to sessions and token metadata.

    :param device_info: Coarse device family (see :func:`describe_device`).
    :type device_info: str
    :param ip_address: Client IP as seen after proxy handling.
    :type ip_address: str | None
    :param user_agent: Raw User-Agent header.
    :type user_agent: str | None
    """

    device_info: str = UNKNOWN_DEVICE
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_headers(cls, *, user_agent: str | None, ip_address: str | None) -> ClientInfo:
        return cls(
            device_info=describe_device(user_agent),
            ip_address=ip_address,
            user_agent=user_agent,
        )
