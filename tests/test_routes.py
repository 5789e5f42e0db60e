import pytest

from aiproxy_worker.utils.http import CORS_HEADERS, SECURITY_HEADERS


def assert_fixed_headers(response):
    for key, value in {**CORS_HEADERS, **SECURITY_HEADERS}.items():
        assert response.headers.get(key) == value, key


@pytest.mark.parametrize("path", ["/", "/chat", "/anything/else"])
def test_options_is_empty_preflight_on_any_path(client, path):
    response = client.open(path, method="OPTIONS")

    assert response.status_code == 200
    assert response.data == b""
    assert_fixed_headers(response)


def test_health_check(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.headers["Content-Type"] == "application/json"
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["service"] == "AI Proxy Worker"
    assert payload["timestamp"].endswith("Z")
    assert_fixed_headers(response)


def test_health_check_needs_no_auth(make_client, settings):
    client = make_client(settings)
    response = client.get("/", headers={"Authorization": "Bearer wrong"})

    assert response.status_code == 200


@pytest.mark.parametrize(
    "method,path",
    [
        ("GET", "/chat"),
        ("POST", "/"),
        ("POST", "/chat/"),
        ("POST", "/v1/chat/completions"),
        ("PUT", "/chat"),
        ("DELETE", "/chat"),
        ("PATCH", "/"),
        ("GET", "/favicon.ico"),
    ],
)
def test_unrouted_requests_are_not_found(client, method, path):
    response = client.open(path, method=method)

    assert response.status_code == 404
    payload = response.get_json()
    assert payload["error"] == "not_found"
    assert payload["details"] == "Endpoint not found"
    assert "timestamp" in payload
    assert_fixed_headers(response)


def test_unknown_http_method_is_not_found(client):
    response = client.open("/chat", method="TRACE")

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"
    assert_fixed_headers(response)


def test_not_found_skips_auth_and_upstream(client, fake_upstream):
    response = client.get("/missing")

    assert response.status_code == 404
    assert fake_upstream.calls == []


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"


def test_request_id_is_generated(client):
    response = client.get("/")

    assert len(response.headers["X-Request-ID"]) == 32
