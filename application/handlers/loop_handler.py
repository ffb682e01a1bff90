# application/handlers/loop_handler.py
from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from application.handlers.base import StepHandler, step_label
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from application.services.template_renderer import resolve_path
from domain.errors import ScriptError, StructuralError
from domain.result import StepResult
from domain.run import RunContext
from domain.steps.base import Step
from domain.steps.loop import LoopStep

if TYPE_CHECKING:
    from application.executor.step_executor import StepExecutor


class LoopStepHandler(StepHandler):
    def __init__(self, executor: "StepExecutor"):
        self._executor = executor

    def supports(self, step) -> bool:
        return isinstance(step, LoopStep)

    def handle(self, step: LoopStep, ctx: RunContext, deps: ExecutionDeps) -> StepOutcome:
        spec = step.loop
        label = step_label(step, ctx, deps)

        body, base_dir = self._body(step, ctx, deps, label)
        items = self._items(step, ctx, label)

        deps.logger.info("loop.start", step=label, items=len(items), start=spec.start)
        results: List[StepResult] = []
        for i in range(spec.start, len(items)):
            bindings: Dict[str, Any] = {spec.var_name: items[i]}
            if spec.index_var_name:
                bindings[spec.index_var_name] = i

            child = ctx.fork(bindings, step, base_dir)
            deps.logger.debug("loop.iteration", step=label, index=i)
            try:
                results.extend(self._executor.execute(body, child, deps))
            except ScriptError as e:
                e.partial_results = results + e.partial_results
                raise
            finally:
                ctx.merge_back(child, bindings)

        return StepOutcome(results=results)

    def _items(self, step: LoopStep, ctx: RunContext, label: str) -> List[Any]:
        source = step.loop.items
        if isinstance(source, list):
            return source
        items = resolve_path(ctx.scope.vars, source)
        if not isinstance(items, list):
            raise StructuralError(f"step={label} loop.items is not an array: {source}")
        return items

    def _body(
        self, step: LoopStep, ctx: RunContext, deps: ExecutionDeps, label: str
    ) -> Tuple[List[Step], Optional[str]]:
        spec = step.loop
        if spec.steps is not None:
            return spec.steps, None
        if spec.include:
            script = deps.require_script_source().load(spec.include, ctx.base_dir)
            if not script.steps:
                raise StructuralError(f"step={label} loop.include={spec.include} has no steps")
            base_dir = os.path.dirname(script.source_path) if script.source_path else None
            return script.steps, base_dir
        raise StructuralError(f"step={label} loop has neither steps nor include")
