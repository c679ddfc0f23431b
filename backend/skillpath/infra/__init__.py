"""Adapters implementing the service ports (JWT, Redis, password hashing)."""

from __future__ import annotations

import logging

from flask import Flask

from skillpath.infra.jwt.flask_jwt_token_codec import JWTTokenCodec
from skillpath.infra.redis.redis_token_cache import RedisTokenCache
from skillpath.infra.security.werkzeug_password_hasher import WerkzeugPasswordHasher
from skillpath.services._shared.ports import InMemoryTokenCache, TokenCache

log = logging.getLogger(__name__)


def init_app(app: Flask) -> None:
    """
    Register port adapters under ``app.extensions``.

    The Redis cache is used whenever a Redis client was initialised by
    :mod:`skillpath.core.extensions`; otherwise tokens and sessions live in
    process memory, which is only suitable for tests and a single worker.
    """
    client = app.extensions.get("redis_client")
    cache: TokenCache
    if client is not None:
        cache = RedisTokenCache(r=client)
    else:
        log.warning("token_cache.in_memory: REDIS_URL not set, state is process-local")
        cache = InMemoryTokenCache()

    app.extensions["token_cache"] = cache
    app.extensions["token_codec"] = JWTTokenCodec()
    app.extensions["password_hasher"] = WerkzeugPasswordHasher(
        method=app.config.get("PASSWORD_HASH_METHOD", "scrypt")
    )


__all__ = ["init_app"]
