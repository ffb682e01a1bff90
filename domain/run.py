# domain/run.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional

from domain.scope import Scope
from domain.script import RegisteredHandler, Server
from domain.steps.base import Step


@dataclass
class RunContext:
    """
    Execution state threaded through the step tree.

    ``stack`` holds the enclosing loop / include steps; each StepResult records
    their labels. A fork shares everything except the scope and the stack.
    """
    run_id: str = ""
    scope: Scope = field(default_factory=Scope)
    stack: List[Step] = field(default_factory=list)

    servers: List[Server] = field(default_factory=list)
    handlers: Dict[str, RegisteredHandler] = field(default_factory=dict)
    before_step: Optional[Callable[..., Any]] = None
    after_step: Optional[Callable[..., Any]] = None

    # directory used to resolve include / loop-include paths
    base_dir: Optional[str] = None

    def server(self, name: Optional[str]) -> Optional[Server]:
        if not self.servers:
            return None
        if name is None:
            return self.servers[0]
        for s in self.servers:
            if s.name == name:
                return s
        return None

    def stack_names(self) -> List[str]:
        return [s.label for s in self.stack]

    def fork(
        self,
        bindings: Mapping[str, Any],
        step: Step,
        base_dir: Optional[str] = None,
    ) -> "RunContext":
        return replace(
            self,
            scope=self.scope.fork(bindings),
            stack=[*self.stack, step],
            base_dir=base_dir if base_dir is not None else self.base_dir,
        )

    def merge_back(self, child: "RunContext", bindings: Mapping[str, Any]) -> None:
        self.scope.merge_back(child.scope, bindings.keys())
