import io
import json
import time

import pytest

from aiproxy_worker.core.app import create_app
from aiproxy_worker.core.settings import Settings
from aiproxy_worker.services import upstream as upstream_module


class FakeUpstreamResponse:
    def __init__(self, body=b"", status=200, reason="OK", headers=None):
        self._stream = io.BytesIO(body)
        self.status = status
        self.reason = reason
        self.headers = headers if headers is not None else {"Content-Type": "application/json"}
        self.closed = False

    def read(self, size=-1):
        return self._stream.read(size)

    def read1(self, size=-1):
        return self._stream.read1(size)

    def close(self):
        self.closed = True


class FakeOpenUpstream:
    """Stands in for open_upstream and records what was sent upstream."""

    def __init__(self):
        self.calls = []
        self.response = FakeUpstreamResponse(json.dumps({"id": "chatcmpl-1"}).encode("utf-8"))
        self.error = None
        self.delay = 0.0

    def __call__(self, req, timeout=None, deadline=None):
        self.calls.append({"request": req, "timeout": timeout, "deadline": deadline})
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def last_request(self):
        return self.calls[-1]["request"]

    @property
    def last_json(self):
        return json.loads(self.last_request.data)


@pytest.fixture
def settings():
    return Settings(
        upstream_api_key="sk-upstream",
        proxy_key="proxy-secret",
        upstream_url="https://upstream.test/chat/completions",
        max_body_size=1024,
        request_timeout=5.0,
    )


@pytest.fixture
def fake_upstream(monkeypatch):
    fake = FakeOpenUpstream()
    monkeypatch.setattr(upstream_module, "open_upstream", fake)
    return fake


@pytest.fixture
def make_client(fake_upstream):
    def _make(settings):
        app = create_app(settings)
        app.config["TESTING"] = True
        return app.test_client()

    return _make


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer proxy-secret", "Content-Type": "application/json"}


@pytest.fixture
def chat_body():
    return {"messages": [{"role": "user", "content": "hello"}]}
