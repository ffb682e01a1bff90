# infrastructure/http/requests_client.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import requests

from application.ports.http_client import HttpClientPort, HttpResponse
from domain.errors import TransportError


def _merge_headers(headers: List[Tuple[str, str]]) -> Dict[str, str]:
    """
    requests takes a dict: repeated Cookie headers are folded into one,
    any other repeated name keeps the last value.
    """
    merged: Dict[str, str] = {}
    for name, value in headers:
        key = next((k for k in merged if k.lower() == name.lower()), None)
        if key is not None and name.lower() == "cookie":
            merged[key] = f"{merged[key]}; {value}"
        else:
            merged[key or name] = value
    return merged


class RequestsHttpClient(HttpClientPort):
    """
    Stateless transport: cookies are never carried between requests, sessions
    are sent explicitly by the step runner.
    """

    def __init__(
        self,
        timeout_sec: float = 20,
        allow_redirects: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self._session = session or requests.Session()
        self._timeout = timeout_sec
        self._allow_redirects = allow_redirects

    def send(
        self,
        method: str,
        url: str,
        headers: List[Tuple[str, str]],
        body: Optional[bytes | str] = None,
    ) -> HttpResponse:
        data = body.encode("utf-8") if isinstance(body, str) else body
        try:
            resp = self._session.request(
                method=method.upper(),
                url=url,
                headers=_merge_headers(headers),
                data=data,
                timeout=self._timeout,
                allow_redirects=self._allow_redirects,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method.upper()} {url} failed: {e}") from e
        finally:
            self._session.cookies.clear()

        return HttpResponse(
            status=resp.status_code,
            headers=self._header_list(resp),
            body=self._parse_body(resp),
            url=str(resp.url),
        )

    def _header_list(self, resp: requests.Response) -> List[Tuple[str, str]]:
        raw = getattr(resp.raw, "headers", None)
        if raw is not None and hasattr(raw, "getlist"):
            out: List[Tuple[str, str]] = []
            for name in raw.keys():
                for value in raw.getlist(name):
                    out.append((name, value))
            return out
        return list(resp.headers.items())

    def _parse_body(self, resp: requests.Response) -> Any:
        content_type = resp.headers.get("Content-Type", "")
        if "application/json" in content_type.lower() and resp.content:
            try:
                return resp.json()
            except ValueError:
                return resp.text
        return resp.text
