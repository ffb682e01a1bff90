# application/services/request_preparer.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode

from application.services.execution_deps import ExecutionDeps
from application.services.template_renderer import resolve_path
from domain.errors import ExtractionError, StructuralError
from domain.run import RunContext
from domain.script import Server
from domain.steps.request import DEFAULT_CONTENT_TYPE, RequestStep
from domain.values import UNDEFINED, js_string

# encodeURIComponent keeps these unescaped
_QUERY_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    headers: List[Tuple[str, str]]
    body: Optional[bytes | str]
    server: Server

    def header(self, name: str) -> Optional[str]:
        for n, v in self.headers:
            if n.lower() == name.lower():
                return v
        return None


def set_header(headers: List[Tuple[str, str]], name: str, value: str) -> None:
    """Replace every header of that name (case-insensitive) with one entry."""
    headers[:] = [(n, v) for n, v in headers if n.lower() != name.lower()]
    headers.append((name, value))


def is_json_content_type(content_type: Optional[str]) -> bool:
    return content_type is not None and "json" in content_type.lower()


def json_default(value: Any) -> Any:
    if value is UNDEFINED:
        return None
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return js_string(value)


class RequestPreparer:
    """
    Resolve server, URL, query, headers, session and body for a request step.
    """

    def prepare(self, step: RequestStep, ctx: RunContext, deps: ExecutionDeps, label: str) -> PreparedRequest:
        req = step.request
        server = ctx.server(step.server)
        if server is None:
            raise StructuralError(f"server not found for step={label} server={step.server or '(default)'}")

        tctx = ctx.scope.template_context()
        render = deps.renderer.render

        url = render(server.url_for(req.uri), tctx) + self._query_string(req.query, tctx, deps)

        headers: List[Tuple[str, str]] = []
        content_type = req.content_type or DEFAULT_CONTENT_TYPE
        set_header(headers, "Content-Type", content_type)
        for name, value in req.headers:
            set_header(headers, render(name, tctx), render(value, tctx))

        if req.session:
            self._apply_session(step, server, headers, ctx, deps, label)

        body: Optional[bytes | str] = None
        if req.files:
            encoded = deps.require_multipart_encoder().encode(req.files)
            set_header(headers, "Content-Type", encoded.content_type)
            body = encoded.body
        elif req.body is not None:
            walked = deps.renderer.walk(req.body, tctx)
            if isinstance(walked, str) and not is_json_content_type(content_type):
                body = walked
            else:
                body = json.dumps(walked, default=json_default)
        elif req.body_var:
            if req.body_var not in ctx.scope.vars:
                raise ExtractionError(f"step={label} bodyVar not defined: {req.body_var}")
            body = json.dumps(ctx.scope.vars[req.body_var], default=json_default)

        return PreparedRequest(method=req.method, url=url, headers=headers, body=body, server=server)

    def _query_string(self, query: Mapping[str, Any], tctx: Mapping[str, Any], deps: ExecutionDeps) -> str:
        pairs: List[Tuple[str, str]] = []
        for key, value in query.items():
            if value is None or value is UNDEFINED:
                continue
            if isinstance(value, str):
                pairs.append((key, deps.renderer.render(value, tctx)))
            else:
                pairs.append((key, js_string(value)))
        if not pairs:
            return ""
        return "?" + urlencode(pairs, quote_via=quote, safe=_QUERY_SAFE)

    def _apply_session(
        self,
        step: RequestStep,
        server: Server,
        headers: List[Tuple[str, str]],
        ctx: RunContext,
        deps: ExecutionDeps,
        label: str,
    ) -> None:
        if server.session is None:
            raise StructuralError(f"step={label} session not supported by server={server.name}")

        token = self.find_session(step.request.session, ctx, deps)
        if token is None:
            deps.logger.warning("request.session_missing", step=label, session=step.request.session)
            return

        if server.session.cookie:
            headers.append(("Cookie", f"{server.session.cookie}={token}"))
        if server.session.header:
            set_header(headers, server.session.header, token)

    def find_session(self, name: str, ctx: RunContext, deps: ExecutionDeps) -> Optional[str]:
        sessions: Dict[str, str] = ctx.scope.sessions
        if name in sessions:
            return sessions[name]

        # the name may itself point at a session name: "{{who}}" or a variable
        tctx = ctx.scope.template_context()
        if "{{" in name:
            resolved: Any = deps.renderer.render(name, tctx)
        else:
            resolved = resolve_path(tctx, name)
        if isinstance(resolved, str):
            return sessions.get(resolved)
        return None
