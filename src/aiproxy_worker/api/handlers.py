"""Routing for the proxy: preflight, health check, /chat and everything else."""
import json
import time

from flask import g, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from ..core.errors import ErrorKind, ProxyError
from ..core.settings import Settings
from ..services.upstream import UpstreamClient
from ..utils.http import (
    CORS_HEADERS,
    create_response,
    translate_error,
    utc_timestamp,
)
from ..utils.logging import log_event
from .validators import too_large_error, validate_auth, validate_body, validate_request

ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CHAT_PATH = "/chat"


def handle_simple_routes(method: str, path: str, settings: Settings):
    """Return a response for preflight and health checks, or None."""
    if method == "OPTIONS":
        return create_response(None, 200, CORS_HEADERS)
    if method == "GET" and path == "/":
        body = json.dumps(
            {
                "status": "ok",
                "service": settings.service_name,
                "timestamp": utc_timestamp(),
            }
        )
        return create_response(body, 200, {"Content-Type": "application/json"})
    return None


def not_found_error() -> ProxyError:
    return ProxyError(ErrorKind.NOT_FOUND, "Endpoint not found")


def register_routes(app, settings: Settings, client: UpstreamClient | None = None):
    """Register Flask routes on the app."""
    client = client or UpstreamClient(settings)

    def proxy_chat(started_at: float):
        if not validate_auth(request.headers.get("Authorization"), settings.proxy_key):
            raise ProxyError(ErrorKind.UNAUTHORIZED, "Invalid or missing authorization")

        if not settings.upstream_api_key:
            log_event(40, "configuration_error", error="Missing DEEPSEEK_API_KEY environment variable")
            raise ProxyError(ErrorKind.CONFIGURATION_ERROR, "Service configuration error")

        validate_request(request.headers, settings)
        try:
            body = request.get_data(cache=False)
        except RequestEntityTooLarge as e:
            raise too_large_error(settings.max_body_size) from e
        validate_body(body, settings)

        upstream = client.send(
            body,
            accept=request.headers.get("Accept"),
            content_type=request.headers.get("Content-Type"),
        )
        headers = {
            "Content-Type": upstream.content_type or "application/json",
            "Cache-Control": "no-store, no-transform",
        }
        duration_ms = int((time.time() - started_at) * 1000)
        log_event(
            20,
            "request_completed",
            request_id=g.request_id,
            status=upstream.status,
            duration=f"{duration_ms}ms",
        )
        return create_response(upstream.iter_body(), upstream.status, headers)

    @app.route("/", defaults={"path": ""}, methods=ROUTED_METHODS, provide_automatic_options=False)
    @app.route("/<path:path>", methods=ROUTED_METHODS, provide_automatic_options=False)
    def dispatch(path):
        started_at = getattr(g, "request_start", time.time())
        try:
            simple = handle_simple_routes(request.method, request.path, settings)
            if simple is not None:
                return simple
            if request.method != "POST" or request.path != CHAT_PATH:
                raise not_found_error()
            return proxy_chat(started_at)
        except Exception as e:
            return translate_error(e, request.method, request.path, started_at)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        # Methods outside ROUTED_METHODS land here as 405s.
        if err.code in (404, 405):
            err = not_found_error()
        elif err.code == 413:
            err = too_large_error(settings.max_body_size)
        return translate_error(err, request.method, request.path, getattr(g, "request_start", time.time()))
