# application/executor/handler_registry.py
from __future__ import annotations

from typing import TYPE_CHECKING, List

from application.handlers.base import StepHandler
from domain.errors import StructuralError
from domain.steps.base import Step

if TYPE_CHECKING:
    from application.executor.step_executor import StepExecutor


class HandlerRegistry:
    def __init__(self, handlers: List[StepHandler]):
        self._handlers = handlers

    @classmethod
    def default(cls, executor: "StepExecutor") -> "HandlerRegistry":
        from application.handlers.http_handler import RequestStepHandler
        from application.handlers.include_handler import IncludeStepHandler
        from application.handlers.loop_handler import LoopStepHandler

        return cls([RequestStepHandler(), LoopStepHandler(executor), IncludeStepHandler(executor)])

    def get_handler(self, step: Step) -> StepHandler:
        for h in self._handlers:
            if h.supports(step):
                return h
        raise StructuralError(f"No handler found for step: {type(step).__name__} ({step.label})")
