# tests/mock_http_client.py
"""
In-process HTTP transport for running scripts without a network.

Routes:
- POST /echo          -> 200 {"echoed": <json body>, "method": ..., "query": {...}}
- GET  /status/<n>    -> status n
- POST /login         -> 200, Set-Cookie: sid=<token>, {"token": <token>}
- GET  /whoami        -> 200 {"user": "alice"} with a valid sid cookie or
                         X-Session header, 401 otherwise
- anything else       -> 200 {"method": ..., "path": ..., "query": {...}}
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, urlsplit

from application.ports.http_client import HttpClientPort, HttpResponse

JSON_HEADERS = [("Content-Type", "application/json; charset=utf-8")]
SESSION_TOKEN = "tok-123"


class MockHttpClient(HttpClientPort):
    def __init__(self) -> None:
        self.requests: List[Dict[str, Any]] = []

    def send(
        self,
        method: str,
        url: str,
        headers: List[Tuple[str, str]],
        body: Optional[bytes | str] = None,
    ) -> HttpResponse:
        parts = urlsplit(url)
        self.requests.append({"method": method, "url": url, "headers": list(headers), "body": body})
        query = dict(parse_qsl(parts.query))
        path = parts.path

        if path == "/echo":
            return self._json(200, {"echoed": self._decode(body), "method": method, "query": query}, url)

        if path.startswith("/status/"):
            return self._json(int(path.rsplit("/", 1)[1]), {"path": path}, url)

        if path == "/login":
            return HttpResponse(
                status=200,
                headers=JSON_HEADERS + [
                    ("Set-Cookie", "theme=dark; Path=/"),
                    ("Set-Cookie", f"sid={SESSION_TOKEN}; Path=/; HttpOnly"),
                ],
                body={"token": SESSION_TOKEN},
                url=url,
            )

        if path == "/whoami":
            cookie = self._header(headers, "cookie") or ""
            session = self._header(headers, "x-session")
            if f"sid={SESSION_TOKEN}" in cookie or session == SESSION_TOKEN:
                return self._json(200, {"user": "alice"}, url)
            return self._json(401, {"error": "unauthorized"}, url)

        return self._json(200, {"method": method, "path": path, "query": query}, url)

    def last(self) -> Dict[str, Any]:
        return self.requests[-1]

    def _json(self, status: int, payload: Any, url: str) -> HttpResponse:
        return HttpResponse(status=status, headers=list(JSON_HEADERS), body=payload, url=url)

    def _decode(self, body: Optional[bytes | str]) -> Any:
        if body is None:
            return None
        text = body.decode("utf-8") if isinstance(body, bytes) else body
        try:
            return json.loads(text)
        except ValueError:
            return text

    def _header(self, headers: List[Tuple[str, str]], name: str) -> Optional[str]:
        for n, v in headers:
            if n.lower() == name:
                return v
        return None
