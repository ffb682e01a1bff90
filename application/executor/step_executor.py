# application/executor/step_executor.py
from __future__ import annotations

import time
import uuid
from typing import Any, List, Mapping, Optional

from application.executor.handler_registry import HandlerRegistry
from application.handlers.base import step_label
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from application.services.execution_error_builder import ExecutionErrorBuilder
from domain.errors import ScriptError, StructuralError
from domain.result import StepResult
from domain.run import RunContext
from domain.steps.base import Step
from domain.steps.request import RequestStep


class StepExecutor:
    """
    Runs a step list sequentially and returns the flattened leaf results.

    StructuralError always propagates. Other ScriptErrors, ValidationFailure
    included, propagate unless continue_on_error is set, in which case the step
    records a synthetic error result (the step's collected check details plus a
    runtime entry) and the list moves on. Propagating errors carry the results
    recorded so far in ``partial_results``.
    """

    def __init__(self, registry: Optional[HandlerRegistry] = None, error_builder: Optional[ExecutionErrorBuilder] = None):
        self._registry = registry or HandlerRegistry.default(self)
        self._error_builder = error_builder or ExecutionErrorBuilder()

    def execute(self, steps: List[Step], ctx: RunContext, deps: ExecutionDeps) -> List[StepResult]:
        # ★run_id を付与（呼び元が指定していれば尊重）
        if not ctx.run_id:
            ctx.run_id = uuid.uuid4().hex
            deps = deps.with_logger(deps.logger.bind(run_id=ctx.run_id))

        results: List[StepResult] = []
        try:
            self._check_handler_names(steps, ctx, deps)
            for step in steps:
                results.extend(self._execute_step(step, ctx, deps))
        except ScriptError as e:
            e.partial_results = results + e.partial_results
            raise
        return results

    def _execute_step(self, step: Step, ctx: RunContext, deps: ExecutionDeps) -> List[StepResult]:
        label = step_label(step, ctx, deps)
        if step.delay_ms:
            deps.logger.info("step.delay", step=label, delay_ms=step.delay_ms)
            deps.sleep(step.delay_ms / 1000.0)

        deps.logger.info(
            "step.start",
            step=label,
            step_type=type(step).__name__,
            stack=ctx.stack_names(),
        )
        t0 = time.perf_counter()

        try:
            self._apply_vars(step, ctx, deps)
            self._apply_edits(step, ctx)
            handler = self._registry.get_handler(step)
            outcome: StepOutcome = handler.handle(step, ctx, deps)
        except StructuralError as e:
            deps.logger.error("step.failed", step=label, error_type=type(e).__name__, error=str(e))
            raise
        except ScriptError as e:
            deps.logger.error("step.error", step=label, error_type=type(e).__name__, error=str(e))
            if not deps.options.continue_on_error:
                raise
            # a failed verdict is replaced by the error record
            failed = getattr(e, "failed_result", None)
            recorded = [r for r in e.partial_results if r is not failed]
            results = recorded + [self._error_builder.build_runtime_result(label, e, ctx, e.details)]
            deps.logger.info("step.error_recorded", step=label, results=len(results))
            return results

        deps.logger.info(
            "step.end",
            step=label,
            ok=outcome.ok,
            results=len(outcome.results),
            elapsed_ms=int((time.perf_counter() - t0) * 1000),
        )
        return outcome.results

    def _apply_vars(self, step: Step, ctx: RunContext, deps: ExecutionDeps) -> None:
        if not step.vars:
            return
        tctx = ctx.scope.template_context()
        for name, value in step.vars.items():
            if isinstance(value, str):
                value = deps.renderer.render_value(value, tctx)
            ctx.scope.vars[name] = tctx[name] = value

    def _apply_edits(self, step: Step, ctx: RunContext) -> None:
        variables = ctx.scope.vars
        for name, value in step.edits.items():
            if isinstance(value, Mapping):
                current = variables.get(name)
                merged: dict[str, Any] = dict(current) if isinstance(current, Mapping) else {}
                merged.update(value)
                variables[name] = merged
            else:
                variables[name] = value

    def _check_handler_names(self, steps: List[Step], ctx: RunContext, deps: ExecutionDeps) -> None:
        for step in steps:
            if not isinstance(step, RequestStep):
                continue
            for call in step.handlers:
                if call.handler not in ctx.handlers:
                    raise StructuralError(f"handler={call.handler} not found for step={step_label(step, ctx, deps)}")
