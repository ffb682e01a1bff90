from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from urllib3 import HTTPHeaderDict

from domain.errors import TransportError
from infrastructure.http.requests_client import RequestsHttpClient


def make_response(status=200, content=b"", headers=(), url="http://mock.test/"):
    raw_headers = HTTPHeaderDict()
    for name, value in headers:
        raw_headers.add(name, value)
    resp = requests.Response()
    resp.status_code = status
    resp._content = content
    resp.headers = CaseInsensitiveDict(dict(headers))
    resp.raw = SimpleNamespace(headers=raw_headers)
    resp.url = url
    return resp


class FakeSession:
    def __init__(self, response=None, error=None):
        self.cookies = requests.cookies.RequestsCookieJar()
        self.calls = []
        self._response = response
        self._error = error

    def request(self, **kwargs):
        self.calls.append(kwargs)
        self.cookies.set("leaked", "1")
        if self._error is not None:
            raise self._error
        return self._response


def test_send_parses_json_and_keeps_duplicate_headers() -> None:
    response = make_response(
        content=b'{"ok": true}',
        headers=[("Content-Type", "application/json"), ("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")],
    )
    session = FakeSession(response)
    client = RequestsHttpClient(timeout_sec=5, session=session)

    result = client.send("post", "http://mock.test/x", [("Cookie", "a=1"), ("cookie", "b=2"), ("X", "1")], '{"a": 1}')

    assert result.status == 200
    assert result.body == {"ok": True}
    assert [v for n, v in result.headers if n.lower() == "set-cookie"] == ["a=1", "b=2"]
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["headers"] == {"Cookie": "a=1; b=2", "X": "1"}
    assert call["data"] == b'{"a": 1}'
    assert call["timeout"] == 5
    assert len(session.cookies) == 0


def test_text_body() -> None:
    session = FakeSession(make_response(content=b"hello", headers=[("Content-Type", "text/plain")]))

    result = RequestsHttpClient(session=session).send("GET", "http://mock.test/", [])

    assert result.body == "hello"


def test_invalid_json_falls_back_to_text() -> None:
    session = FakeSession(make_response(content=b"<html>", headers=[("Content-Type", "application/json")]))

    assert RequestsHttpClient(session=session).send("GET", "http://mock.test/", []).body == "<html>"


def test_transport_failure_is_wrapped() -> None:
    session = FakeSession(error=requests.ConnectionError("refused"))

    with pytest.raises(TransportError, match="GET http://mock.test/ failed: refused"):
        RequestsHttpClient(session=session).send("get", "http://mock.test/", [])

    assert len(session.cookies) == 0
