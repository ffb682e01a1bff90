# application/services/response_handler_pipeline.py
from __future__ import annotations

import json
import time
from typing import Any, Dict, Mapping, MutableMapping, Optional

from application.ports.http_client import HttpResponse
from application.ports.logger import LoggerPort
from application.services.template_renderer import TemplateRenderer
from domain.errors import HandlerError, ScriptError
from domain.script import HandlerArg, RegisteredHandler
from domain.steps.request import HandlerCall, RequestStep
from domain.values import UNDEFINED, is_number, is_numeric_string, js_string, parse_number, type_name


def coerce_arg(value: Any, arg_type: Optional[str], what: str) -> Any:
    """Check / convert an evaluated handler argument to its declared type."""
    if arg_type is None or arg_type == "any":
        return value

    if arg_type == "string":
        if isinstance(value, str):
            return value
        if is_number(value) or isinstance(value, bool):
            return js_string(value)
    elif arg_type == "number":
        if is_number(value):
            return value
        if is_numeric_string(value):
            return parse_number(value)
    elif arg_type == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
    elif arg_type in ("object", "array"):
        expected = dict if arg_type == "object" else list
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                pass
        if isinstance(value, expected):
            return value

    raise HandlerError(f"{what}: expected {arg_type}, got {type_name(value)}")


class ResponseHandlerPipeline:
    """
    Run a step's response handlers in order.

    Each handler receives a shallow copy of {vars, sessions, res, body}. Names
    it adds to that mapping are written back to the variables; objects it
    mutates in place are shared with the scope already.
    """

    def __init__(self, renderer: TemplateRenderer, sleep=time.sleep):
        self._renderer = renderer
        self._sleep = sleep

    def run(
        self,
        step: RequestStep,
        handlers: Mapping[str, RegisteredHandler],
        response: HttpResponse,
        cx: MutableMapping[str, Any],
        variables: MutableMapping[str, Any],
        sessions: Mapping[str, str],
        logger: LoggerPort,
    ) -> HttpResponse:
        for call in step.handlers:
            response = self._run_one(call, step, handlers, response, cx, variables, sessions, logger)
        return response

    def _run_one(
        self,
        call: HandlerCall,
        step: RequestStep,
        handlers: Mapping[str, RegisteredHandler],
        response: HttpResponse,
        cx: MutableMapping[str, Any],
        variables: MutableMapping[str, Any],
        sessions: Mapping[str, str],
        logger: LoggerPort,
    ) -> HttpResponse:
        desc = call.description
        if call.delay_ms:
            logger.info("handler.delay", handler=desc, delay_ms=call.delay_ms)
            self._sleep(call.delay_ms / 1000.0)

        registered = handlers.get(call.handler)
        if registered is None:
            raise HandlerError(f"handler not found: {desc}")

        args = self._build_args(call, registered, cx)

        scope_view: Dict[str, Any] = {**variables, **sessions, "res": response, "body": response.body}
        orig_keys = set(scope_view)

        logger.info("handler.invoke", handler=desc, args=args)
        try:
            result = registered.func(response, args, scope_view, step)
        except ScriptError:
            raise
        except Exception as e:
            raise HandlerError(f"handler={desc} failed: {e}") from e

        added = [k for k in scope_view if k not in orig_keys]
        for k in added:
            variables[k] = cx[k] = scope_view[k]
        if added:
            logger.debug("handler.vars_added", handler=desc, names=added)

        return self._as_response(result, response, desc)

    def _build_args(
        self,
        call: HandlerCall,
        registered: RegisteredHandler,
        cx: Mapping[str, Any],
    ) -> Dict[str, Any]:
        desc = call.description
        params: Dict[str, Any] = dict(call.params)
        for name, cfg in registered.args.items():
            if name in params:
                continue
            if cfg.required:
                raise HandlerError(f"handler={desc} missing required arg={name}")
            if cfg.default is not UNDEFINED:
                params[name] = cfg.default

        args: Dict[str, Any] = {}
        for name, raw in params.items():
            cfg = registered.args.get(name, HandlerArg())
            if cfg.opaque:
                args[name] = raw
                continue
            value = self._renderer.walk(raw, cx)
            args[name] = coerce_arg(value, cfg.type, f"handler={desc} wrong type for arg={name}")
        return args

    def _as_response(self, result: Any, current: HttpResponse, desc: str) -> HttpResponse:
        if result is None:
            return current
        if isinstance(result, HttpResponse):
            return result
        if isinstance(result, Mapping):
            return HttpResponse(
                status=int(result.get("status", current.status)),
                headers=list(result.get("headers", current.headers)),
                body=result.get("body", current.body),
                url=result.get("url", current.url),
            )
        raise HandlerError(f"handler={desc} returned {type(result).__name__}, expected a response")
