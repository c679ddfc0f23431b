"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from skillpath.core.config import CONFIG_MAP, BaseConfig, get_config
from skillpath.core.logger import configure_logging
from skillpath.core.logger import init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config class or object, or an environment name
        (``"development"``, ``"testing"``, ``"production"``). Defaults to the
        class selected by ``APP_ENV``.
    :raises RuntimeError: If the JWT signing key is unusable or Redis is
        configured but unreachable.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    if config is None:
        config = get_config()
    elif isinstance(config, str):
        config = CONFIG_MAP[config.lower()]
    app.config.from_object(config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Proxy headers if running behind a reverse proxy
    from skillpath.core import proxy

    proxy.init_app(app)

    from skillpath.core import extensions

    extensions.init_app(app)

    from skillpath import infra

    infra.init_app(app)

    init_logging(app)

    from skillpath.core import cors

    cors.init_app(app)

    from skillpath.api import init_app as init_api

    init_api(app)

    from skillpath.core import errors

    errors.init_app(app)

    return app
