# application/services/response_validator.py
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from application.ports.http_client import HttpResponse
from application.services.context_dump import dump_context
from application.services.execution_deps import ExecutionDeps
from domain.errors import ScriptError
from domain.result import CheckDetail, ValidationResult
from domain.steps.request import DEFAULT_STATUS_CLASS, RequestStep
from domain.values import UNDEFINED, js_truthy

_HEADER_KEY_RE = re.compile(r"[^A-Za-z0-9]")


def header_key(name: str) -> str:
    """Content-Type -> content_type"""
    return _HEADER_KEY_RE.sub("_", name).lower()


def header_map(headers: Sequence[Tuple[str, str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for name, value in headers:
        out[header_key(name)] = value
    return out


def check_context(scope_ctx: Mapping[str, Any], response: HttpResponse) -> Dict[str, Any]:
    """Template context for checks: scope + body + header map."""
    cx: Dict[str, Any] = dict(scope_ctx)
    cx["body"] = response.body if js_truthy(response.body) else UNDEFINED
    cx["header"] = header_map(response.headers)
    return cx


class ResponseValidator:
    def validate(
        self,
        step: RequestStep,
        response: HttpResponse,
        cx: Mapping[str, Any],
        deps: ExecutionDeps,
        label: str,
    ) -> ValidationResult:
        details: List[CheckDetail] = [self._status_detail(step, response)]

        renderer = deps.renderer
        for group in step.response.validate:
            name = renderer.render(group.name, cx)
            for expr in group.checks:
                try:
                    rendered = renderer.render_check(expr, cx)
                except ScriptError as e:
                    details.append(CheckDetail(name=name, check=expr, result=False, error=str(e)))
                    deps.logger.warning("check.error", step=label, check=expr, error=str(e))
                    continue

                passed = rendered.strip().lower() == "true"
                details.append(CheckDetail(name=name, check=expr, result=passed, rendered=rendered))
                if passed:
                    deps.logger.trace("check.passed", step=label, check=expr)
                else:
                    deps.logger.warning(
                        "check.failed",
                        step=label,
                        check=expr,
                        rendered=rendered,
                        context=dump_context(cx, deps.options.context_dump_limit),
                    )

        return ValidationResult(result=all(d.result for d in details), details=details)

    def _status_detail(self, step: RequestStep, response: HttpResponse) -> CheckDetail:
        expected = step.response.status
        if expected:
            passed = response.status == expected
            expectation = str(expected)
        else:
            expectation = step.response.status_class or DEFAULT_STATUS_CLASS
            passed = f"{response.status // 100}xx" == expectation
        return CheckDetail(
            name="status",
            check=f"status {response.status}",
            result=passed,
            rendered=f"expected {expectation}",
        )
