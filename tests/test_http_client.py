from types import SimpleNamespace

import requests

from infodash.http_client import (
    DEFAULT_USER_AGENT,
    HttpClient,
    HttpResponse,
    capture_headers,
)


class RecordingSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def fake_response(status=200, content=b"", headers=None):
    return SimpleNamespace(status_code=status, content=content, headers=headers or {})


def test_get_returns_sanitized_body_and_raw_content():
    session = RecordingSession(
        fake_response(200, b"ok\xff!", {"Content-Type": " text/html "})
    )
    client = HttpClient(session=session)

    response = client.get("https://example.com/")

    assert response.success
    assert response.status_code == 200
    assert response.body == "ok!"
    assert response.content == b"ok\xff!"
    assert response.headers == {"Content-Type": "text/html"}
    assert response.error == ""


def test_get_sends_user_agent_timeout_and_follows_redirects():
    session = RecordingSession(fake_response())
    client = HttpClient(timeout=5, user_agent="infodash-test", session=session)

    client.get("https://example.com/", params={"format": "j1"})

    url, kwargs = session.calls[0]
    assert url == "https://example.com/"
    assert kwargs["headers"]["User-Agent"] == "infodash-test"
    assert "gzip" in kwargs["headers"]["Accept-Encoding"]
    assert kwargs["timeout"] == 5
    assert kwargs["allow_redirects"] is True
    assert kwargs["params"] == {"format": "j1"}


def test_setters_apply_to_later_requests():
    session = RecordingSession(fake_response())
    client = HttpClient(session=session)
    assert client.user_agent == DEFAULT_USER_AGENT

    client.set_user_agent("other-agent")
    client.set_timeout(2.5)
    client.get("https://example.com/")

    _, kwargs = session.calls[0]
    assert kwargs["headers"]["User-Agent"] == "other-agent"
    assert kwargs["timeout"] == 2.5


def test_non_2xx_status_is_not_success():
    session = RecordingSession(fake_response(404, b"missing"))
    response = HttpClient(session=session).get("https://example.com/nope")

    assert not response.success
    assert response.status_code == 404
    assert response.body == "missing"
    assert response.error == "HTTP 404"


def test_transport_error_is_reported_not_raised():
    session = RecordingSession(error=requests.ConnectionError("connection refused"))
    response = HttpClient(session=session).get("https://unreachable.invalid/")

    assert isinstance(response, HttpResponse)
    assert not response.success
    assert response.status_code == 0
    assert "connection refused" in response.error


def test_capture_headers_keeps_last_duplicate():
    headers = capture_headers(
        [("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), (" X-Trace ", " abc "), ("", "x")]
    )
    assert headers == {"Set-Cookie": "b=2", "X-Trace": "abc"}


def test_get_bytes_returns_empty_on_failure():
    assert HttpClient(session=RecordingSession(fake_response(500, b"err"))).get_bytes(
        "https://example.com/icon"
    ) == b""
    failing = RecordingSession(error=requests.Timeout("slow"))
    assert HttpClient(session=failing).get_bytes("https://example.com/icon") == b""


def test_get_bytes_returns_payload():
    session = RecordingSession(fake_response(200, b"\x89PNG"))
    assert HttpClient(session=session).get_bytes("https://example.com/icon") == b"\x89PNG"


def test_get_async_delivers_response_to_callback():
    session = RecordingSession(fake_response(200, b"async"))
    received = []

    worker = HttpClient(session=session).get_async("https://example.com/", received.append)
    worker.join(timeout=5)

    assert len(received) == 1
    assert received[0].body == "async"
