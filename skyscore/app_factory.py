"""Flask application factory for Skyscore."""

from __future__ import annotations

from flask import Flask
from requests import Session

from skyscore.api import create_blueprint
from skyscore.config import AppConfig, load_app_config
from skyscore.pipeline import AggregationPipeline
from skyscore.services.http import configure_http, get_http_session
from skyscore.services.logging import configure_logging


def create_app(config: AppConfig | None = None, *, session: Session | None = None) -> Flask:
    """Instantiate and configure the Flask application."""
    cfg = config or load_app_config()
    configure_http(cfg.http_settings())

    app = Flask(__name__)
    app.config.update(cfg.to_flask_config())
    app.config["SKYSCORE_CONFIG"] = cfg
    configure_logging(app, cfg)

    pipeline = AggregationPipeline(cfg, session=session or get_http_session())
    app.register_blueprint(create_blueprint(pipeline), url_prefix="/api")
    return app
