# domain/errors.py
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from domain.result import CheckDetail, StepResult


class ScriptError(Exception):
    """
    Base class for every error raised while running a script.

    partial_results holds the step results recorded before the failure, so a
    caller can still inspect the audit trail of an aborted run. details holds
    the check details the failing step had already collected, if any.
    """

    def __init__(self, message: str, details: Optional[List["CheckDetail"]] = None):
        super().__init__(message)
        self.partial_results: List["StepResult"] = []
        self.details: List["CheckDetail"] = list(details or [])

    def details_as_dicts(self) -> List[Dict[str, Any]]:
        return [d.to_dict() for d in self.details]


class StructuralError(ScriptError):
    """Malformed script: missing uri/method, unknown server, bad loop/include."""


class ExtractionError(ScriptError):
    pass


class HandlerError(ScriptError):
    pass


class TransportError(ScriptError):
    pass


class TemplateRenderError(ScriptError):
    pass


class OperatorError(ScriptError):
    pass


class ValidationFailure(ScriptError):
    """
    A step's verdict was false. failed_result is the failing step's own record;
    it is also the last entry of partial_results.
    """

    def __init__(
        self,
        message: str,
        details: Optional[List["CheckDetail"]] = None,
        failed_result: Optional["StepResult"] = None,
    ):
        super().__init__(message, details)
        self.failed_result = failed_result
        if failed_result is not None:
            self.partial_results = [failed_result]
