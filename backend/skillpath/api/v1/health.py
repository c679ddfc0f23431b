"""Health check endpoint."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from skillpath.api.deps import json_response, timing
from skillpath.core.extensions import db
from skillpath.services._shared.errors import TokenCacheError

bp = Blueprint("health", __name__)

log = logging.getLogger(__name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and token cache health."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        log.exception("healthcheck.db_error")
        db_status = "fail"

    cache_status = "ok"
    try:
        current_app.extensions["token_cache"].get_refresh_token(0)
    except TokenCacheError:
        log.exception("healthcheck.cache_error")
        cache_status = "fail"

    status = "ok" if db_status == cache_status == "ok" else "degraded"
    payload = {
        "status": status,
        "db": db_status,
        "cache": cache_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload, status=200 if status == "ok" else 503)
