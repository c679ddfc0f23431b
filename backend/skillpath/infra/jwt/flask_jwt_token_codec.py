# skillpath/infra/jwt/flask_jwt_token_codec.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, cast

import jwt as pyjwt
from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

from skillpath.services._shared.errors import SigningKeyError
from skillpath.services._shared.ports import DecodedToken, IssuedToken, TokenCodec, TokenType

if TYPE_CHECKING:
    from skillpath.models.user import User

log = logging.getLogger(__name__)

_VALIDITY_KEYS = {
    TokenType.ACCESS: "JWT_ACCESS_TOKEN_EXPIRES",
    TokenType.REFRESH: "JWT_REFRESH_TOKEN_EXPIRES",
}


def _from_ts(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC)


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    Adapter for Flask-JWT-Extended.

    Claims: ``sub`` (user id as string), ``email``, ``role`` (access only),
    ``type``, ``iat``, ``exp``, ``jti``.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def validity(self, token_type: TokenType) -> timedelta:
        value = current_app.config[_VALIDITY_KEYS[token_type]]
        if isinstance(value, timedelta):
            return value
        return timedelta(seconds=int(value))

    def issue(self, user: User, token_type: TokenType) -> IssuedToken:
        claims: dict[str, Any] = {"email": user.email}
        if token_type is TokenType.ACCESS:
            claims["role"] = user.role.value
        try:
            if token_type is TokenType.ACCESS:
                token = create_access_token(
                    identity=str(user.id),
                    additional_claims=claims,
                    expires_delta=self.validity(token_type),
                )
            else:
                token = create_refresh_token(
                    identity=str(user.id),
                    additional_claims=claims,
                    expires_delta=self.validity(token_type),
                )
        except RuntimeError as exc:
            # flask-jwt-extended raises RuntimeError when no key is configured
            log.critical("jwt.signing_key_error", exc_info=True)
            raise SigningKeyError(str(exc)) from exc

        payload = cast(dict[str, Any], decode_token(token))
        return IssuedToken(
            value=token,
            token_type=token_type,
            jti=str(payload["jti"]),
            issued_at=cast(datetime, _from_ts(payload["iat"])),
            expires_at=cast(datetime, _from_ts(payload["exp"])),
        )

    def verify(self, token: str) -> bool:
        if not token:
            return False
        try:
            decode_token(token)
        except pyjwt.ExpiredSignatureError:
            log.info("jwt.verify_failed", extra={"reason": "expired"})
            return False
        except pyjwt.InvalidSignatureError:
            log.warning("jwt.verify_failed", extra={"reason": "bad_signature"})
            return False
        except (pyjwt.InvalidTokenError, JWTExtendedException) as exc:
            log.warning("jwt.verify_failed", extra={"reason": type(exc).__name__})
            return False
        return True

    def decode(self, token: str) -> DecodedToken | None:
        if not token:
            return None
        try:
            payload = cast(dict[str, Any], decode_token(token, allow_expired=True))
        except (pyjwt.InvalidTokenError, JWTExtendedException):
            log.debug("jwt.decode_failed", exc_info=True)
            return None

        subject = payload.get("sub")
        raw_type = payload.get("type")
        return DecodedToken(
            user_id=int(subject) if isinstance(subject, str) and subject.isdigit() else None,
            email=payload.get("email"),
            role=payload.get("role"),
            token_type=TokenType(raw_type) if raw_type in {"access", "refresh"} else None,
            jti=payload.get("jti"),
            issued_at=_from_ts(payload.get("iat")),
            expires_at=_from_ts(payload.get("exp")),
        )

    def is_type(self, token: str, token_type: TokenType) -> bool:
        decoded = self.decode(token)
        return decoded is not None and decoded.token_type is token_type
