"""HTTP response builders and error translation."""
import json
import time
from datetime import datetime, timezone

from flask import Response

from ..core.errors import ErrorKind, ProxyError
from .logging import log_event

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_response(body=None, status: int = 200, headers: dict | None = None) -> Response:
    """Return a response carrying the CORS and security headers."""
    merged = dict(headers or {})
    merged.update(CORS_HEADERS)
    merged.update(SECURITY_HEADERS)
    response = Response(body, status=status)
    # Flask defaults to text/html; only keep a content type when one was given.
    if "Content-Type" not in merged:
        response.headers.pop("Content-Type", None)
    for key, value in merged.items():
        response.headers[key] = value
    return response


def create_error_response(error: str, status: int = 500, details=None) -> Response:
    """Return the JSON error envelope."""
    payload = {"error": error, "timestamp": utc_timestamp()}
    if details:
        payload["details"] = details
    headers = {
        "Content-Type": "application/json",
        "Cache-Control": "no-cache",
    }
    return create_response(json.dumps(payload, ensure_ascii=False), status, headers)


def error_response_for(err: ProxyError) -> Response:
    return create_error_response(err.kind.value, err.status, err.details)


def translate_error(err: Exception, method: str, path: str, started_at: float) -> Response:
    """Log a failed request and convert the exception into an error envelope."""
    duration_ms = int((time.time() - started_at) * 1000)
    status = err.status if isinstance(err, ProxyError) else 500
    log_event(
        40 if status >= 500 else 30,
        "request_failed",
        status=status,
        error=str(err),
        duration=f"{duration_ms}ms",
        method=method,
        path=path,
        timestamp=utc_timestamp(),
    )
    if isinstance(err, ProxyError):
        return error_response_for(err)
    return create_error_response(
        ErrorKind.INTERNAL_ERROR.value,
        500,
        "An unexpected error occurred",
    )
