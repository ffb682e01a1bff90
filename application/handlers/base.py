from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from application.outcome import StepOutcome
from domain.errors import OperatorError, TemplateRenderError
from domain.steps.base import Step

if TYPE_CHECKING:
    from domain.run import RunContext
    from application.services.execution_deps import ExecutionDeps


class StepHandler(ABC):
    @abstractmethod
    def supports(self, step: Step) -> bool: ...

    @abstractmethod
    def handle(self, step: Step, ctx: "RunContext", deps: "ExecutionDeps") -> StepOutcome: ...


def step_label(step: Step, ctx: "RunContext", deps: "ExecutionDeps") -> str:
    """Step names may reference variables, e.g. "create {{entity}}"."""
    if not step.name or "{{" not in step.name:
        return step.label
    try:
        return deps.renderer.render(step.name, ctx.scope.template_context())
    except (TemplateRenderError, OperatorError) as e:
        deps.logger.debug("step.label_unrendered", step=step.name, error=str(e))
        return step.name
