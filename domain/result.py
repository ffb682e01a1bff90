# domain/result.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from domain.script import Script

COMBINED_VALIDATION_NAME = "combined-validations"
ERROR_VALIDATION_NAME = "error"
RUNTIME_CHECK_NAME = "runtime"
RUNTIME_CHECK_TEXT = "<internal error>"


@dataclass(frozen=True)
class CheckDetail:
    name: str
    check: str
    result: bool
    rendered: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "check": self.check}
        if self.rendered is not None:
            out["rendered"] = self.rendered
        if self.error is not None:
            out["error"] = self.error
        out["result"] = self.result
        return out


@dataclass(frozen=True)
class ValidationResult:
    result: bool
    details: List[CheckDetail] = field(default_factory=list)
    name: str = COMBINED_VALIDATION_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "result": self.result,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass(frozen=True)
class StepResult:
    """
    One entry per executed leaf request step. vars / sessions are copies taken
    when the result was recorded.
    """
    step: str
    validation: ValidationResult
    vars: Dict[str, Any]
    sessions: Dict[str, str]
    stack: List[str] = field(default_factory=list)
    status: Optional[int] = None
    headers: Optional[List[Tuple[str, str]]] = None
    body: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"step": self.step}
        if self.status is not None:
            out["status"] = self.status
        if self.headers is not None:
            out["headers"] = [{"name": n, "value": v} for n, v in self.headers]
        if self.body is not None:
            out["body"] = self.body
        out["validation"] = self.validation.to_dict()
        out["vars"] = self.vars
        out["sessions"] = self.sessions
        out["stack"] = list(self.stack)
        return out


@dataclass(frozen=True)
class ScriptResult:
    script: "Script"
    step_results: List[StepResult]

    @property
    def ok(self) -> bool:
        return all(r.validation.result for r in self.step_results)
