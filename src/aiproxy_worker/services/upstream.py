"""Upstream chat-completion client with a bounded, single-attempt call."""
import json
import socket
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
from http.client import HTTPConnection, HTTPException, HTTPSConnection
from typing import Any, Iterator, Optional
from urllib.error import HTTPError
from urllib.request import HTTPHandler, HTTPSHandler, Request, build_opener

from ..core.errors import ErrorKind, ProxyError, UpstreamStatusError
from ..core.settings import Settings
from ..utils.http import utc_timestamp
from ..utils.logging import log_event

CHUNK_SIZE = 16 * 1024
MAX_LOGGED_BODY = 2000


class Deadline:
    """Timer that aborts the sockets of an upstream call after `seconds`."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self._started = time.monotonic()
        self._expired = threading.Event()
        self._lock = threading.Lock()
        self._sockets = []
        self._timer = threading.Timer(seconds, self._expire)
        self._timer.daemon = True

    @property
    def expired(self) -> bool:
        return self._expired.is_set()

    def remaining(self) -> float:
        return max(0.0, self.seconds - (time.monotonic() - self._started))

    def track(self, sock) -> None:
        """Register a socket to shut down on expiry."""
        with self._lock:
            self._sockets.append(sock)
            expired = self.expired
        if expired:
            _shutdown(sock)

    def _expire(self) -> None:
        with self._lock:
            self._expired.set()
            sockets = list(self._sockets)
        for sock in sockets:
            _shutdown(sock)

    def start(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        self._timer.cancel()


def _shutdown(sock) -> None:
    # Unblocks a recv() pending in another thread; close() alone does not.
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass


@contextmanager
def upstream_deadline(seconds: float) -> Iterator[Deadline]:
    """Arm a deadline for the duration of the block; the timer is always cancelled."""
    deadline = Deadline(seconds)
    deadline.start()
    try:
        yield deadline
    finally:
        deadline.cancel()


class _DeadlineHTTPConnection(HTTPConnection):
    def __init__(self, *args, deadline: Deadline, **kwargs):
        super().__init__(*args, **kwargs)
        self._deadline = deadline

    def connect(self):
        super().connect()
        self._deadline.track(self.sock)


class _DeadlineHTTPSConnection(HTTPSConnection):
    def __init__(self, *args, deadline: Deadline, **kwargs):
        super().__init__(*args, **kwargs)
        self._deadline = deadline

    def connect(self):
        super().connect()
        self._deadline.track(self.sock)


class _DeadlineHTTPHandler(HTTPHandler):
    def __init__(self, deadline: Deadline):
        super().__init__()
        self._deadline = deadline

    def http_open(self, req):
        return self.do_open(partial(_DeadlineHTTPConnection, deadline=self._deadline), req)


class _DeadlineHTTPSHandler(HTTPSHandler):
    def __init__(self, deadline: Deadline):
        super().__init__()
        self._deadline = deadline

    def https_open(self, req):
        return self.do_open(
            partial(_DeadlineHTTPSConnection, deadline=self._deadline),
            req,
            context=self._context,
        )


def open_upstream(req: Request, timeout: float, deadline: Deadline):
    """urlopen() whose connections are shut down when `deadline` expires."""
    opener = build_opener(_DeadlineHTTPHandler(deadline), _DeadlineHTTPSHandler(deadline))
    return opener.open(req, timeout=timeout)


def _timeout_error() -> ProxyError:
    return ProxyError(
        ErrorKind.TIMEOUT,
        "Request timeout",
        details="Request to upstream API timed out",
    )


def _is_timeout(err: BaseException) -> bool:
    """Socket timeouts, raw or wrapped in URLError by urllib."""
    return isinstance(err, TimeoutError) or isinstance(getattr(err, "reason", None), TimeoutError)


def inject_default_model(body: bytes, default_model: str) -> bytes:
    """Fill in `model` when the client left it out; unparsable bodies pass through."""
    try:
        data = json.loads(body)
    except (ValueError, RecursionError) as e:
        log_event(30, "model_injection_skipped", error=str(e))
        return body
    if not isinstance(data, dict):
        log_event(30, "model_injection_skipped", error="body is not a JSON object")
        return body
    if not data.get("model"):
        data["model"] = default_model
        log_event(20, "default_model_injected", model=default_model)
    try:
        return json.dumps(data, ensure_ascii=False).encode("utf-8")
    except RecursionError:
        log_event(30, "model_injection_skipped", error="RecursionError")
        return body


@dataclass
class UpstreamResponse:
    status: int
    reason: str
    headers: Any
    raw: Any

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    def iter_body(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body as it arrives and close the connection afterwards."""
        read = getattr(self.raw, "read1", self.raw.read)
        try:
            while True:
                chunk = read(chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.raw.close()

    def close(self) -> None:
        self.raw.close()


class UpstreamClient:
    def __init__(self, settings: Settings):
        self.settings = settings

    def _build_request(self, body: bytes, accept: Optional[str], content_type: Optional[str]) -> Request:
        headers = {
            "Authorization": f"Bearer {self.settings.upstream_api_key}",
            "Content-Type": content_type or "application/json",
            "Accept": accept or "application/json",
            "User-Agent": self.settings.user_agent,
        }
        return Request(self.settings.upstream_url, data=body, headers=headers, method="POST")

    def _status_error(self, err: HTTPError) -> UpstreamStatusError:
        try:
            body = err.read().decode("utf-8", errors="replace")
        except (OSError, HTTPException):
            body = None
        finally:
            err.close()
        if isinstance(body, str) and len(body) > MAX_LOGGED_BODY:
            body = body[:MAX_LOGGED_BODY] + "...(truncated)"
        log_event(
            40,
            "upstream_error",
            status=err.code,
            statusText=err.reason,
            body=body,
            timestamp=utc_timestamp(),
        )
        return UpstreamStatusError(err.code, str(err.reason or ""), body)

    def send(
        self,
        body: bytes,
        accept: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> UpstreamResponse:
        """POST the chat payload upstream and return the open response.

        Raises ProxyError(TIMEOUT) when the deadline passes before the upstream
        answers, and UpstreamStatusError for non-2xx answers. Other network
        failures propagate unchanged.
        """
        req = self._build_request(
            inject_default_model(body, self.settings.default_model),
            accept,
            content_type,
        )
        with upstream_deadline(self.settings.request_timeout) as deadline:
            try:
                resp = open_upstream(req, max(deadline.remaining(), 0.001), deadline)
            except HTTPError as e:
                raise self._status_error(e) from e
            except (OSError, HTTPException) as e:
                # Shutting the socket down surfaces as resets or truncated reads.
                if deadline.expired or _is_timeout(e):
                    raise _timeout_error() from e
                raise
            if deadline.expired:
                resp.close()
                raise _timeout_error()

        log_event(
            20,
            "upstream_response",
            status=resp.status,
            statusText=resp.reason,
            timestamp=utc_timestamp(),
        )
        return UpstreamResponse(resp.status, resp.reason, resp.headers, resp)
