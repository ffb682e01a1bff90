# application/handlers/http_handler.py
from __future__ import annotations

import json
import time
from typing import Any, Callable, Optional

from application.handlers.base import StepHandler, step_label
from application.outcome import StepOutcome
from application.ports.http_client import HttpResponse
from application.services.execution_deps import ExecutionDeps
from application.services.extractor import Extractor
from application.services.redactor import mask_pairs
from application.services.request_preparer import PreparedRequest, RequestPreparer
from application.services.response_handler_pipeline import ResponseHandlerPipeline
from application.services.response_validator import ResponseValidator, check_context
from domain.errors import HandlerError, ScriptError, StructuralError, TransportError, ValidationFailure
from domain.result import StepResult
from domain.run import RunContext
from domain.script import Server
from domain.steps.request import CaptureSource, RequestStep
from domain.values import UNDEFINED, type_name

_BODY_LOG_LIMIT = 200


def _body_head(body: Any) -> str:
    text = body if isinstance(body, str) else json.dumps(body, default=str)
    return text[:_BODY_LOG_LIMIT]


def call_hook(hook: Optional[Callable[..., Any]], name: str, *args: Any) -> None:
    if hook is None:
        return
    try:
        hook(*args)
    except ScriptError:
        raise
    except Exception as e:
        raise HandlerError(f"{name} hook failed: {e}") from e


class RequestStepHandler(StepHandler):
    """
    Leaf step: build request -> dispatch -> capture session -> capture vars
    -> response handlers -> validate -> record.
    """

    def __init__(
        self,
        preparer: Optional[RequestPreparer] = None,
        extractor: Optional[Extractor] = None,
        validator: Optional[ResponseValidator] = None,
    ):
        self._preparer = preparer or RequestPreparer()
        self._extractor = extractor or Extractor()
        self._validator = validator or ResponseValidator()

    def supports(self, step) -> bool:
        return isinstance(step, RequestStep)

    def handle(self, step: RequestStep, ctx: RunContext, deps: ExecutionDeps) -> StepOutcome:
        label = step_label(step, ctx, deps)
        prepared = self._preparer.prepare(step, ctx, deps, label)

        call_hook(ctx.before_step, "beforeStep", step, ctx.scope)

        response = self._send(prepared, deps, label)

        if step.response.session is not None:
            self._capture_session(step, prepared.server, response, ctx, deps, label)

        for var_name, source in step.response.capture.items():
            value = self._extractor.extract(var_name, source, response.body, response.headers, ctx.scope.vars)
            if value is UNDEFINED:
                deps.logger.debug("capture.no_match", step=label, var=var_name, source=source.describe())
                continue
            ctx.scope.vars[var_name] = value
            deps.logger.trace("capture.var", step=label, var=var_name, value=value)

        if step.handlers:
            cx = check_context(ctx.scope.template_context(), response)
            pipeline = ResponseHandlerPipeline(deps.renderer, deps.sleep)
            response = pipeline.run(
                step, ctx.handlers, response, cx, ctx.scope.vars, ctx.scope.sessions, deps.logger
            )

        cx = check_context(ctx.scope.template_context(), response)
        validation = self._validator.validate(step, response, cx, deps, label)

        vars_snapshot, sessions_snapshot = ctx.scope.snapshot()
        result = StepResult(
            step=label,
            stack=ctx.stack_names(),
            status=response.status,
            headers=list(response.headers),
            body=response.body,
            validation=validation,
            vars=vars_snapshot,
            sessions=sessions_snapshot,
        )

        try:
            call_hook(ctx.after_step, "afterStep", step, ctx.scope, result)
        except ScriptError as e:
            if not e.details:
                e.details = list(validation.details)
            raise

        if not validation.result:
            failed = [d.to_dict() for d in validation.details if not d.result]
            deps.logger.error("validation.failed", step=label, failed=failed)
            if not deps.options.continue_on_invalid:
                raise ValidationFailure(
                    f"validation failed in step '{label}': {json.dumps(failed, default=str)}",
                    validation.details,
                    failed_result=result,
                )

        return StepOutcome(results=[result])

    def _send(self, prepared: PreparedRequest, deps: ExecutionDeps, label: str) -> HttpResponse:
        sensitive = [prepared.server.session.header] if prepared.server.session and prepared.server.session.header else []
        deps.logger.info(
            "http.request",
            step=label,
            method=prepared.method,
            url=prepared.url,
            headers=mask_pairs(prepared.headers, sensitive),
        )
        t0 = time.perf_counter()
        try:
            response = deps.http_client.send(prepared.method, prepared.url, prepared.headers, prepared.body)
        except ScriptError:
            raise
        except Exception as e:
            raise TransportError(f"{prepared.method} {prepared.url} failed: {e}") from e

        deps.logger.info(
            "http.response",
            step=label,
            method=prepared.method,
            url=prepared.url,
            status=response.status,
            elapsed_ms=int((time.perf_counter() - t0) * 1000),
            body_head=_body_head(response.body),
        )
        return response

    def _capture_session(
        self,
        step: RequestStep,
        server: Server,
        response: HttpResponse,
        ctx: RunContext,
        deps: ExecutionDeps,
        label: str,
    ) -> None:
        capture = step.response.session
        if server.session is None:
            raise StructuralError(f"step={label} session not supported by server={server.name}")

        source = capture.source
        if source is None:
            if server.session.header:
                source = CaptureSource(header=server.session.header)
            else:
                source = CaptureSource(cookie=server.session.cookie)

        token = self._extractor.extract(
            "session", source, response.body, response.headers, {}, required=False
        )
        if isinstance(token, str):
            ctx.scope.sessions[capture.name] = token
            deps.logger.debug("session.captured", step=label, session=capture.name)
        else:
            deps.logger.warning(
                "session.not_captured",
                step=label,
                session=capture.name,
                source=source.describe(),
                token_type=type_name(token),
            )
