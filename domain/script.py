# domain/script.py
"""
Script domain model
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from domain.steps.base import Step
from domain.values import UNDEFINED

HANDLER_ARG_TYPES = ("string", "number", "boolean", "object", "array", "any")


@dataclass(frozen=True)
class SessionTransport:
    # how a session token is sent; at least one of these is set
    cookie: Optional[str] = None
    header: Optional[str] = None


@dataclass(frozen=True)
class Server:
    name: str
    base: str
    session: Optional[SessionTransport] = None

    def url_for(self, uri: str) -> str:
        if uri.startswith("http://") or uri.startswith("https://"):
            return uri
        base = self.base if self.base.endswith("/") else self.base + "/"
        return base + (uri[1:] if uri.startswith("/") else uri)


@dataclass(frozen=True)
class HandlerArg:
    required: bool = False
    default: Any = UNDEFINED
    type: Optional[str] = None
    opaque: bool = False


@dataclass(frozen=True)
class RegisteredHandler:
    """
    A response handler made available to steps through init.handlers.

    func(response, args, merged_scope, step) -> response
    """
    func: Callable[..., Any]
    args: Dict[str, HandlerArg] = field(default_factory=dict)


@dataclass(frozen=True)
class ScriptParam:
    required: bool = False
    default: Any = UNDEFINED


@dataclass(frozen=True)
class ScriptInit:
    servers: List[Server] = field(default_factory=list)
    vars: Dict[str, Any] = field(default_factory=dict)
    sessions: Dict[str, str] = field(default_factory=dict)
    handlers: Dict[str, RegisteredHandler] = field(default_factory=dict)
    before_step: Optional[Callable[..., Any]] = None
    after_step: Optional[Callable[..., Any]] = None

    def merged(self, overrides: Optional["ScriptInit"]) -> "ScriptInit":
        """Run-time init wins, key by key."""
        if overrides is None:
            return self
        changes = {
            name: getattr(overrides, name)
            for name in ("servers", "vars", "sessions", "handlers", "before_step", "after_step")
            if getattr(overrides, name)
        }
        return replace(self, **changes)


@dataclass(frozen=True)
class Script:
    """
    Script aggregate root
    """
    name: str
    steps: List[Step]
    init: ScriptInit = field(default_factory=ScriptInit)
    params: Dict[str, ScriptParam] = field(default_factory=dict)
    source_path: Optional[str] = None
