from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping

from domain.errors import StructuralError
from domain.script import ScriptParam
from domain.values import UNDEFINED


@dataclass(frozen=True)
class ScriptParamBinder:
    """
    Bind include arguments against the target script's declared params.

    Only declared params are bound: a provided value wins (after ``render``),
    then the declared default. Undeclared arguments are ignored.
    """

    def bind(
        self,
        declared: Mapping[str, ScriptParam],
        provided: Mapping[str, Any],
        step_label: str,
        render: Callable[[Any], Any] = lambda v: v,
    ) -> Dict[str, Any]:
        missing = self._find_missing_params(declared, provided)
        if missing:
            raise StructuralError(f"step={step_label} param={missing[0]} is required by included script")

        bound: Dict[str, Any] = {}
        for name, cfg in declared.items():
            if name in provided:
                bound[name] = render(provided[name])
            elif cfg.default is not UNDEFINED:
                bound[name] = cfg.default
        return bound

    def ignored(self, declared: Mapping[str, ScriptParam], provided: Mapping[str, Any]) -> List[str]:
        return [name for name in provided if name not in declared]

    def _find_missing_params(self, declared: Mapping[str, ScriptParam], provided: Mapping[str, Any]) -> List[str]:
        missing: List[str] = []
        for name, cfg in declared.items():
            if cfg.required and name not in provided:
                missing.append(name)
        return missing
