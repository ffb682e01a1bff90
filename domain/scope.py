# domain/scope.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple


@dataclass
class Scope:
    """
    Variables, sessions and environment visible to templates.

    A fork copies the variable map (shallow) and adds the fork's own bindings;
    sessions and environment are shared. merge_back() writes the child's
    variables into this scope, except the fork's bindings.
    """
    vars: Dict[str, Any] = field(default_factory=dict)
    sessions: Dict[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.env, MappingProxyType):
            self.env = MappingProxyType(dict(self.env))

    def template_context(self) -> Dict[str, Any]:
        ctx: Dict[str, Any] = dict(self.vars)
        ctx.update(self.sessions)
        ctx["env"] = self.env
        return ctx

    def fork(self, bindings: Mapping[str, Any]) -> "Scope":
        child_vars = dict(self.vars)
        child_vars.update(bindings)
        return Scope(vars=child_vars, sessions=self.sessions, env=self.env)

    def merge_back(self, child: "Scope", bindings: Iterable[str]) -> None:
        skip = set(bindings)
        for name, value in child.vars.items():
            if name in skip:
                continue
            if name not in self.vars or self.vars[name] is not value:
                self.vars[name] = value

    def snapshot(self) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """Deep copy per variable. Values that cannot be copied (locks, clients) are shared."""
        return copy_vars(self.vars), dict(self.sessions)


def copy_vars(variables: Mapping[str, Any]) -> Dict[str, Any]:
    return {name: _copy_value(value) for name, value in variables.items()}


def _copy_value(value: Any) -> Any:
    try:
        return copy.deepcopy(value)
    except (TypeError, AttributeError, copy.Error):
        return value
