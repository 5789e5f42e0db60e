"""Inbound request checks for the /chat pipeline."""
import json
from typing import Iterable, Mapping, Optional

from pydantic import ValidationError

from ..core.errors import ErrorKind, ProxyError
from ..core.settings import Settings
from ..utils.logging import log_event
from .schemas import ChatPayload


def validate_auth(authorization: Optional[str], proxy_key: Optional[str]) -> bool:
    """Return True when auth is disabled or the bearer token matches."""
    if not proxy_key:
        return True
    # Plain equality; swap in hmac.compare_digest if timing leaks ever matter here.
    return (authorization or "") == f"Bearer {proxy_key}"


def validate_content_type(content_type: Optional[str]) -> None:
    if "application/json" not in (content_type or ""):
        raise ProxyError(
            ErrorKind.INVALID_CONTENT_TYPE,
            "Invalid content type. Expected application/json",
        )


def too_large_error(max_size: int) -> ProxyError:
    return ProxyError(
        ErrorKind.PAYLOAD_TOO_LARGE,
        f"Request body too large. Maximum size: {max_size} bytes",
    )


def validate_content_length(content_length: Optional[str], max_size: int) -> None:
    """Reject a declared Content-Length above the limit; unparsable counts as zero."""
    try:
        declared = int((content_length or "0").strip())
    except ValueError:
        declared = 0
    if declared > max_size:
        raise too_large_error(max_size)


def validate_body_size(body: bytes, max_size: int) -> None:
    if len(body) > max_size:
        raise too_large_error(max_size)


def validate_model(model: Optional[str], supported_models: Iterable[str]) -> None:
    """Warn about unknown models; the upstream decides whether to reject them."""
    supported = list(supported_models)
    if model and model not in supported:
        log_event(
            30,
            "unsupported_model",
            model=model,
            supported_models=", ".join(supported),
        )


def _validation_message(err: ValidationError) -> str:
    errors = err.errors()
    if not errors:
        return "Invalid request format"
    first = errors[0]
    if first.get("type") == "invalid_request_format":
        return first["msg"]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"Invalid request format. {location}: {first['msg']}"
    return f"Invalid request format. {first['msg']}"


def validate_request_body(body: bytes, supported_models: Iterable[str]) -> ChatPayload:
    """Parse and check the chat payload."""
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise ProxyError(ErrorKind.INVALID_REQUEST, "Invalid JSON format") from e
    if data is None:
        raise ProxyError(ErrorKind.INVALID_REQUEST, "Invalid JSON format")
    if not isinstance(data, dict):
        # Arrays and scalars have no messages field.
        raise ProxyError(
            ErrorKind.INVALID_REQUEST,
            "Invalid request format. Missing or invalid messages array",
        )
    try:
        payload = ChatPayload.model_validate(data)
    except ValidationError as e:
        raise ProxyError(ErrorKind.INVALID_REQUEST, _validation_message(e)) from e
    validate_model(payload.model, supported_models)
    return payload


def validate_request(headers: Mapping[str, str], settings: Settings) -> None:
    """Header checks that run before the body is read."""
    validate_content_type(headers.get("Content-Type"))
    validate_content_length(headers.get("Content-Length"), settings.max_body_size)


def validate_body(body: bytes, settings: Settings) -> None:
    validate_body_size(body, settings.max_body_size)
    if settings.validate_request_body:
        validate_request_body(body, settings.supported_models)
