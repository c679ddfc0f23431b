"""Centralized JSON error handling for the API.

Every error leaves the application with the same body::

    {"status": 401, "code": "T002", "error": "TOKEN_INVALID",
     "message": "...", "details": {...}, "request_id": "..."}

``details`` is omitted when empty.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify
from flask_limiter.errors import RateLimitExceeded
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from skillpath.core.logger import ensure_request_id
from skillpath.services._shared.errors import ErrorCode, TokenCacheError
from skillpath.services._shared.result import Failure

log = logging.getLogger(__name__)


_STATUS_TO_CODE: dict[int, ErrorCode] = {
    400: ErrorCode.INVALID_INPUT_VALUE,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    409: ErrorCode.DATA_CONFLICT,
    429: ErrorCode.TOO_MANY_REQUESTS,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def _http_status_to_code(status_code: int) -> ErrorCode:
    """Map HTTP status codes raised by Werkzeug onto the error catalogue."""
    fallback = (
        ErrorCode.INTERNAL_SERVER_ERROR if status_code >= 500 else ErrorCode.INVALID_INPUT_VALUE
    )
    return _STATUS_TO_CODE.get(status_code, fallback)


def _as_body(
    *,
    status: int,
    error_code: ErrorCode,
    message: str,
    details: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build the error payload.

    :param status: HTTP status code.
    :param error_code: Catalogue entry describing the failure.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: JSON-serializable dictionary.
    :rtype: dict
    """
    body: dict[str, Any] = {
        "status": status,
        "code": error_code.code,
        "error": error_code.name,
        "message": message,
    }
    if details:
        body["details"] = dict(details)
    body["request_id"] = ensure_request_id()
    return body


def error_response(
    error_code: ErrorCode,
    *,
    message: str | None = None,
    details: Mapping[str, Any] | None = None,
    status: int | None = None,
) -> tuple[Response, int]:
    """Return a ``(response, status)`` pair for ``error_code``."""
    status = status or error_code.status
    body = _as_body(
        status=status,
        error_code=error_code,
        message=message or error_code.message,
        details=details,
    )
    return jsonify(body), status


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    error_code : ErrorCode
        Catalogue entry providing the wire code and the HTTP status.
    message : str | None, optional
        Override for the catalogue's default message.
    details : Mapping[str, Any] | None, optional
        Optional structured payload included in the response body.

    Attributes
    ----------
    status_code : int
        HTTP status code returned to the client.
    code : str
        Stable wire identifier (e.g. ``"A007"``).
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message or error_code.message
        super().__init__(self.message)
        self.status_code = error_code.status
        self.code = error_code.code
        self.details = dict(details or {})

    @classmethod
    def from_failure(cls, failure: Failure) -> APIError:
        """Build the HTTP error matching a service :class:`Failure`."""
        return cls(failure.code, details=failure.details)

    def to_body(self) -> dict[str, Any]:
        """
        Serialize error metadata.

        :returns: Error payload dictionary.
        :rtype: dict
        """
        return _as_body(
            status=self.status_code,
            error_code=self.error_code,
            message=self.message,
            details=self.details or None,
        )


def _register_jwt_callbacks() -> None:
    """Render flask-jwt-extended rejections with the common error body."""
    from skillpath.core.extensions import jwt

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        log.info("jwt.missing", extra={"reason": reason})
        return error_response(ErrorCode.UNAUTHORIZED)

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        log.info("jwt.invalid", extra={"reason": reason})
        return error_response(ErrorCode.TOKEN_INVALID)

    @jwt.expired_token_loader
    def _expired_token(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]):
        return error_response(ErrorCode.TOKEN_EXPIRED)

    @jwt.revoked_token_loader
    def _revoked_token(jwt_header: dict[str, Any], jwt_payload: dict[str, Any]):
        log.warning("jwt.revoked", extra={"user_id": jwt_payload.get("sub")})
        return error_response(ErrorCode.TOKEN_BLACKLISTED)


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Guarantees the common error body for all handled errors.
    - Ensures a correlation ``request_id`` is present on every error.
    - Emits 5xx with ``exc_info`` for traceability; 4xx as warnings.
    """

    _register_jwt_callbacks()

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        body = err.to_body()
        level = log.error if err.status_code >= 500 else log.warning
        level(
            "APIError: code=%s status=%s msg=%s request_id=%s",
            err.code,
            err.status_code,
            err.message,
            body.get("request_id"),
        )
        return jsonify(body), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.message).strip()
        level = log.error if status >= 500 else log.warning
        # Expected HTTP errors carry no traceback
        level("HTTPException: code=%s status=%s detail=%s", error_code.code, status, message)
        return error_response(error_code, message=message, status=status)

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(err: RateLimitExceeded):
        log.warning("RateLimitExceeded: limit=%s", err.description)
        return error_response(ErrorCode.TOO_MANY_REQUESTS, details={"limit": err.description})

    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        log.warning("ValidationError: fields=%s", sorted(err.normalized_messages()))
        return error_response(
            ErrorCode.INVALID_INPUT_VALUE,
            details=err.normalized_messages(),
        )

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # Do not leak raw DB error to clients
        log.error("IntegrityError", exc_info=True)
        return error_response(ErrorCode.DATA_CONFLICT)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        log.error("OperationalError", exc_info=True)
        return error_response(ErrorCode.SERVICE_UNAVAILABLE)

    @app.errorhandler(TokenCacheError)
    def handle_cache_error(err: TokenCacheError):
        log.error("TokenCacheError", exc_info=True)
        return error_response(ErrorCode.SERVICE_UNAVAILABLE)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Unexpected server-side error; never leak internal details
        log.error("Unhandled exception", exc_info=True)
        return error_response(ErrorCode.INTERNAL_SERVER_ERROR)
