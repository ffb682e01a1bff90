# application/handlers/include_handler.py
from __future__ import annotations

import os
from typing import TYPE_CHECKING

from application.handlers.base import StepHandler, step_label
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from domain.run import RunContext
from domain.script import Script
from domain.script_param_binder import ScriptParamBinder
from domain.steps.include import IncludeStep

if TYPE_CHECKING:
    from application.executor.step_executor import StepExecutor


class IncludeStepHandler(StepHandler):
    def __init__(self, executor: "StepExecutor", binder: ScriptParamBinder | None = None):
        self._executor = executor
        self._binder = binder or ScriptParamBinder()

    def supports(self, step) -> bool:
        return isinstance(step, IncludeStep)

    def handle(self, step: IncludeStep, ctx: RunContext, deps: ExecutionDeps) -> StepOutcome:
        label = step_label(step, ctx, deps)
        script = self._resolve(step, ctx, deps)

        tctx = ctx.scope.template_context()
        bindings = self._binder.bind(
            script.params,
            step.params,
            label,
            render=lambda v: deps.renderer.walk(v, tctx),
        )
        ignored = self._binder.ignored(script.params, step.params)
        if ignored:
            deps.logger.warning("include.params_ignored", step=label, script=script.name, params=ignored)

        base_dir = os.path.dirname(script.source_path) if script.source_path else None
        child = ctx.fork(bindings, step, base_dir)
        deps.logger.info("include.start", step=label, script=script.name, params=sorted(bindings))
        try:
            results = self._executor.execute(script.steps, child, deps)
        finally:
            ctx.merge_back(child, bindings)
        return StepOutcome(results=results)

    def _resolve(self, step: IncludeStep, ctx: RunContext, deps: ExecutionDeps) -> Script:
        if isinstance(step.include, Script):
            return step.include
        ref = deps.renderer.render(step.include, ctx.scope.template_context())
        return deps.require_script_source().load(ref, ctx.base_dir)
