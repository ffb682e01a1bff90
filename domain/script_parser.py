# domain/script_parser.py
"""
Build Script / Step objects from the JSON / YAML wire format.

Already-built Step and Script instances pass through untouched, so Python
callers can mix dicts and model objects freely.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from domain.errors import StructuralError
from domain.script import (
    HANDLER_ARG_TYPES,
    HandlerArg,
    RegisteredHandler,
    Script,
    ScriptInit,
    ScriptParam,
    Server,
    SessionTransport,
)
from domain.steps import (
    CaptureSource,
    HandlerCall,
    IncludeStep,
    LoopSpec,
    LoopStep,
    RequestSpec,
    RequestStep,
    ResponseSpec,
    SessionCapture,
    Step,
    ValidationGroup,
)
from domain.steps.request import REQUEST_METHODS
from domain.values import UNDEFINED

_DELAY_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.I)
_DELAY_UNITS = {"ms": 1, "s": 1000, "m": 60_000, "h": 3_600_000}


def parse_delay(value: Any) -> Optional[float]:
    """Milliseconds from a number or a simple time string ("250ms", "2s", "1m")."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise StructuralError(f"invalid delay: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        m = _DELAY_RE.match(value)
        if m:
            unit = (m.group(2) or "ms").lower()
            return float(m.group(1)) * _DELAY_UNITS[unit]
    raise StructuralError(f"invalid delay: {value!r}")


def parse_script(data: Any, source_path: Optional[str] = None) -> Script:
    if isinstance(data, Script):
        return data
    if not isinstance(data, Mapping):
        raise StructuralError(f"script must be a mapping, got {type(data).__name__}")

    name = data.get("script") or data.get("name") or ""
    return Script(
        name=str(name),
        steps=parse_steps(data.get("steps") or []),
        init=parse_init(data.get("init")),
        params=_parse_params(data.get("params"), name),
        source_path=source_path,
    )


def parse_init(data: Any) -> ScriptInit:
    if data is None:
        return ScriptInit()
    if isinstance(data, ScriptInit):
        return data
    if not isinstance(data, Mapping):
        raise StructuralError("init must be a mapping")

    servers = [_parse_server(s, i) for i, s in enumerate(data.get("servers") or [])]
    handlers = {
        hname: _parse_registered_handler(hname, h)
        for hname, h in (data.get("handlers") or {}).items()
    }
    return ScriptInit(
        servers=servers,
        vars=dict(data.get("vars") or {}),
        sessions={k: str(v) for k, v in (data.get("sessions") or {}).items()},
        handlers=handlers,
        before_step=data.get("beforeStep"),
        after_step=data.get("afterStep"),
    )


def _parse_server(data: Any, index: int) -> Server:
    if isinstance(data, Server):
        return data
    if not isinstance(data, Mapping) or not data.get("base"):
        raise StructuralError(f"server #{index} requires a base url")
    session = None
    sdata = data.get("session")
    if sdata:
        session = SessionTransport(cookie=sdata.get("cookie"), header=sdata.get("header"))
        if not session.cookie and not session.header:
            raise StructuralError(f"server #{index} session requires a cookie or header name")
    return Server(
        name=data.get("server") or data.get("name") or f"default-{index}",
        base=data["base"],
        session=session,
    )


def _parse_registered_handler(name: str, data: Any) -> RegisteredHandler:
    if isinstance(data, RegisteredHandler):
        return data
    if callable(data):
        return RegisteredHandler(func=data)
    if isinstance(data, Mapping) and callable(data.get("func")):
        args: Dict[str, HandlerArg] = {}
        for arg_name, cfg in (data.get("args") or {}).items():
            cfg = cfg or {}
            arg_type = cfg.get("type")
            if arg_type is not None and arg_type not in HANDLER_ARG_TYPES:
                raise StructuralError(f"handler={name} arg={arg_name} has unknown type={arg_type}")
            args[arg_name] = HandlerArg(
                required=bool(cfg.get("required", False)),
                default=cfg.get("default", UNDEFINED),
                type=arg_type,
                opaque=bool(cfg.get("opaque", False)),
            )
        return RegisteredHandler(func=data["func"], args=args)
    raise StructuralError(f"handler={name} must be callable or define func")


def _parse_params(data: Any, script_name: str) -> Dict[str, ScriptParam]:
    params: Dict[str, ScriptParam] = {}
    for pname, cfg in (data or {}).items():
        if isinstance(cfg, ScriptParam):
            params[pname] = cfg
            continue
        if cfg is None:
            cfg = {}
        if not isinstance(cfg, Mapping):
            raise StructuralError(f"script={script_name} param={pname} must be a mapping")
        params[pname] = ScriptParam(
            required=bool(cfg.get("required", False)),
            default=cfg.get("default", UNDEFINED),
        )
    return params


def parse_steps(items: Any) -> List[Step]:
    if not isinstance(items, list):
        raise StructuralError("steps must be a list")
    return [parse_step(item) for item in items]


def parse_step(data: Any) -> Step:
    if isinstance(data, Step):
        return data
    if not isinstance(data, Mapping):
        raise StructuralError(f"step must be a mapping, got {type(data).__name__}")

    common = dict(
        name=data.get("step") or data.get("name"),
        comment=data.get("comment"),
        delay_ms=parse_delay(data.get("delay")),
        server=data.get("server"),
        vars=dict(data.get("vars") or {}),
        edits=dict(data.get("edits") or {}),
    )
    label = common["name"] or "(unnamed)"

    if data.get("loop") is not None:
        return LoopStep(loop=_parse_loop(data["loop"], label), **common)
    if data.get("include") is not None:
        return IncludeStep(
            include=_parse_include_target(data["include"], label),
            params=dict(data.get("params") or {}),
            **common,
        )
    if data.get("request") is not None:
        return RequestStep(
            request=_parse_request(data["request"], label),
            response=_parse_response(data.get("response"), label),
            handlers=_parse_handler_calls(data.get("handlers"), label),
            **common,
        )
    raise StructuralError(f"step={label} has no request, loop or include")


def _parse_loop(data: Any, label: str) -> LoopSpec:
    if not isinstance(data, Mapping):
        raise StructuralError(f"step={label} loop must be a mapping")
    if data.get("items") is None:
        raise StructuralError(f"step={label} loop has no items")
    if not data.get("varName"):
        raise StructuralError(f"step={label} loop has no varName")
    steps = data.get("steps")
    include = data.get("include")
    if steps is None and not include:
        raise StructuralError(f"step={label} loop has neither steps nor include")
    items = data["items"]
    if not isinstance(items, (list, str)):
        raise StructuralError(f"step={label} loop.items must be a list or a variable name")
    return LoopSpec(
        items=items,
        var_name=data["varName"],
        index_var_name=data.get("indexVarName"),
        start=int(data.get("start") or 0),
        steps=parse_steps(steps) if steps is not None else None,
        include=include,
    )


def _parse_include_target(data: Any, label: str) -> Any:
    if isinstance(data, (str, Script)):
        return data
    if isinstance(data, Mapping):
        return parse_script(data)
    raise StructuralError(f"step={label} include must be a script or a path")


def _parse_request(data: Any, label: str) -> RequestSpec:
    if not isinstance(data, Mapping):
        raise StructuralError(f"step={label} request must be a mapping")

    method: Optional[str] = None
    uri: Optional[str] = None
    for m in REQUEST_METHODS:
        prop = m.lower()
        if prop in data:
            if method is not None:
                raise StructuralError(f"step={label} has multiple method properties ({method}, {m})")
            method, uri = m, data[prop]

    if method is None:
        uri = data.get("uri")
        if uri is None or uri == "":
            raise StructuralError(f"step={label} request has no uri")
        method = str(data.get("method") or "GET").upper()
        if method not in REQUEST_METHODS:
            raise StructuralError(f"step={label} request has unknown method={method}")

    return RequestSpec(
        method=method,
        uri=str(uri if uri is not None else ""),
        query=dict(data.get("query") or {}),
        headers=_parse_headers(data.get("headers"), label),
        content_type=data.get("contentType"),
        body=data.get("body"),
        body_var=data.get("bodyVar"),
        session=data.get("session"),
        files=dict(data["files"]) if data.get("files") else None,
    )


def _parse_headers(data: Any, label: str) -> List[Tuple[str, str]]:
    if not data:
        return []
    if isinstance(data, Mapping):
        return [(str(k), str(v)) for k, v in data.items()]
    out: List[Tuple[str, str]] = []
    for h in data:
        if isinstance(h, Mapping) and "name" in h:
            out.append((str(h["name"]), str(h.get("value", ""))))
        elif isinstance(h, (list, tuple)) and len(h) == 2:
            out.append((str(h[0]), str(h[1])))
        else:
            raise StructuralError(f"step={label} invalid header entry: {h!r}")
    return out


def parse_capture_source(data: Any) -> CaptureSource:
    if isinstance(data, CaptureSource):
        return data
    if not isinstance(data, Mapping):
        # left invalid; the extractor reports it when the step runs
        return CaptureSource()

    parse = data.get("parse")
    if parse is True:
        count = 1
    elif isinstance(parse, int) and not isinstance(parse, bool):
        count = max(parse, 0)
    else:
        count = 0

    if "body" in data:
        return CaptureSource(from_body=True, body_path=data["body"], parse=count)
    if data.get("assign"):
        return CaptureSource(assign=str(data["assign"]), parse=count)
    if data.get("header"):
        return CaptureSource(header=_source_name(data["header"]), parse=count)
    if data.get("cookie"):
        return CaptureSource(cookie=_source_name(data["cookie"]), parse=count)
    return CaptureSource(parse=count)


def _source_name(value: Any) -> str:
    if isinstance(value, Mapping):
        return str(value.get("name", ""))
    return str(value)


def _parse_response(data: Any, label: str) -> ResponseSpec:
    if data is None:
        return ResponseSpec()
    if isinstance(data, ResponseSpec):
        return data
    if not isinstance(data, Mapping):
        raise StructuralError(f"step={label} response must be a mapping")

    session = None
    sdata = data.get("session")
    if sdata:
        if not sdata.get("name"):
            raise StructuralError(f"step={label} response.session requires a name")
        session = SessionCapture(
            name=sdata["name"],
            source=parse_capture_source(sdata["from"]) if sdata.get("from") else None,
        )

    capture_data = data.get("capture") or data.get("vars") or {}
    capture = {var: parse_capture_source(src) for var, src in capture_data.items()}

    validate: List[ValidationGroup] = []
    for i, group in enumerate(data.get("validate") or []):
        checks = group.get("check") or []
        if isinstance(checks, str):
            checks = [checks]
        validate.append(
            ValidationGroup(
                name=str(group.get("id") or group.get("name") or f"validation-{i}"),
                checks=[str(c) for c in checks],
            )
        )

    status = data.get("status")
    return ResponseSpec(
        status=int(status) if status is not None else None,
        status_class=data.get("statusClass"),
        session=session,
        capture=capture,
        validate=validate,
    )


def _parse_handler_calls(data: Any, label: str) -> List[HandlerCall]:
    calls: List[HandlerCall] = []
    for h in data or []:
        if isinstance(h, HandlerCall):
            calls.append(h)
        elif isinstance(h, str):
            calls.append(HandlerCall(handler=h))
        elif isinstance(h, Mapping) and h.get("handler"):
            calls.append(
                HandlerCall(
                    handler=h["handler"],
                    params=dict(h.get("params") or {}),
                    comment=h.get("comment"),
                    delay_ms=parse_delay(h.get("delay")),
                )
            )
        else:
            raise StructuralError(f"step={label} invalid handler entry: {h!r}")
    return calls
