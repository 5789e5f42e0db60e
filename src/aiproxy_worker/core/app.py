"""Application factory and entrypoint."""
import os

from flask import Flask

from ..api.handlers import register_routes
from ..api.middleware import register_middlewares
from ..services.upstream import UpstreamClient
from ..utils.logging import log_event, setup_logging
from .settings import Settings, get_settings


def create_app(settings: Settings | None = None, client: UpstreamClient | None = None) -> Flask:
    """Create and configure the Flask application."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_body_size
    app.config["SETTINGS"] = settings

    register_middlewares(app)
    register_routes(app, settings, client)
    return app


def run() -> None:
    """Run the Flask development server."""
    app = create_app()
    settings = app.config["SETTINGS"]

    if not settings.upstream_api_key:
        log_event(30, "config_warning", error="DEEPSEEK_API_KEY is not set; /chat will return configuration_error")
    if not settings.proxy_key:
        log_event(30, "config_warning", error="PROXY_KEY is not set; /chat accepts unauthenticated callers")

    debug = os.getenv("FLASK_DEBUG", "").lower() in ("1", "true", "yes", "on")
    app.run(host="0.0.0.0", port=settings.port, debug=debug)


if __name__ == "__main__":
    run()
