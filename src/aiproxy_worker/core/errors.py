"""Error kinds raised by the proxy pipeline and their HTTP mapping."""
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    INVALID_CONTENT_TYPE = "invalid_content_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFIGURATION_ERROR = "configuration_error"
    TIMEOUT = "timeout"
    API_ERROR = "api_error"
    INTERNAL_ERROR = "internal_error"


_STATUS_BY_KIND = {
    ErrorKind.INVALID_CONTENT_TYPE: 400,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFIGURATION_ERROR: 500,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.API_ERROR: 502,
    ErrorKind.INTERNAL_ERROR: 500,
}


def status_for(kind: ErrorKind) -> int:
    """Return the HTTP status for an error kind."""
    return _STATUS_BY_KIND[kind]


class ProxyError(Exception):
    """A pipeline failure tagged with the error kind reported to the caller."""

    def __init__(self, kind: ErrorKind, message: str, details: Any = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = message if details is None else details

    @property
    def status(self) -> int:
        return status_for(self.kind)


class UpstreamStatusError(ProxyError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status: int, reason: str, body: Optional[str] = None):
        super().__init__(
            ErrorKind.API_ERROR,
            f"Upstream API returned {status} {reason}".strip(),
            details={"upstream_status": status, "upstream_message": reason},
        )
        self.upstream_status = status
        self.reason = reason
        self.body = body

    @property
    def status(self) -> int:
        return self.upstream_status or status_for(self.kind)
