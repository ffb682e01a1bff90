from __future__ import annotations

from typing import List, Optional

from domain.errors import ScriptError
from domain.result import (
    ERROR_VALIDATION_NAME,
    RUNTIME_CHECK_NAME,
    RUNTIME_CHECK_TEXT,
    CheckDetail,
    StepResult,
    ValidationResult,
)
from domain.run import RunContext


class ExecutionErrorBuilder:
    """
    Result recorded for a step whose runtime error was suppressed by
    continue_on_error: status 0, no headers, empty body.
    """

    def build_runtime_result(
        self,
        label: str,
        error: ScriptError,
        ctx: RunContext,
        details: Optional[List[CheckDetail]] = None,
    ) -> StepResult:
        all_details = list(details or [])
        all_details.append(
            CheckDetail(
                name=RUNTIME_CHECK_NAME,
                check=RUNTIME_CHECK_TEXT,
                error=str(error),
                result=False,
            )
        )
        vars_snapshot, sessions_snapshot = ctx.scope.snapshot()
        return StepResult(
            step=label,
            stack=ctx.stack_names(),
            status=0,
            headers=[],
            body="",
            validation=ValidationResult(name=ERROR_VALIDATION_NAME, result=False, details=all_details),
            vars=vars_snapshot,
            sessions=sessions_snapshot,
        )
