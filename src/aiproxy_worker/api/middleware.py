"""Flask middleware registration for request context and access logging."""
import logging
import time
import uuid

from flask import g, request

from ..utils.logging import log_event, logger, redact_headers


def register_middlewares(app):
    """Register Flask middlewares on the app."""

    @app.before_request
    def attach_request_context():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.request_start = time.time()

    @app.after_request
    def add_headers(response):
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        if logger.isEnabledFor(logging.DEBUG):
            latency_ms = None
            if hasattr(g, "request_start"):
                latency_ms = int((time.time() - g.request_start) * 1000)
            log_event(
                10,
                "request",
                request_id=getattr(g, "request_id", ""),
                method=request.method,
                path=request.path,
                status=response.status_code,
                latency_ms=latency_ms,
                headers=redact_headers(dict(request.headers)),
            )
        return response
