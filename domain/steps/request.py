# domain/steps/request.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from domain.steps.base import Step

REQUEST_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "CONNECT", "TRACE")
DEFAULT_CONTENT_TYPE = "application/json"
DEFAULT_STATUS_CLASS = "2xx"


@dataclass(frozen=True)
class RequestSpec:
    method: str
    uri: str
    query: Dict[str, Any] = field(default_factory=dict)
    headers: List[Tuple[str, str]] = field(default_factory=list)
    content_type: Optional[str] = None
    body: Any = None
    body_var: Optional[str] = None
    session: Optional[str] = None
    files: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class CaptureSource:
    """
    Exactly one source is set:
      - from_body: JSONPath (body_path) or the whole body when body_path is None
      - header / cookie: name lookups
      - assign: dotted path into existing variables
    """
    from_body: bool = False
    body_path: Optional[str] = None
    header: Optional[str] = None
    cookie: Optional[str] = None
    assign: Optional[str] = None
    parse: int = 0

    def describe(self) -> str:
        if self.from_body:
            return f"body:{self.body_path}" if self.body_path is not None else "body"
        if self.assign:
            return f"assign:{self.assign}"
        if self.header:
            return f"header:{self.header}"
        if self.cookie:
            return f"cookie:{self.cookie}"
        return "invalid"


@dataclass(frozen=True)
class SessionCapture:
    name: str
    source: Optional[CaptureSource] = None


@dataclass(frozen=True)
class ValidationGroup:
    name: str
    checks: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResponseSpec:
    status: Optional[int] = None
    status_class: Optional[str] = None
    session: Optional[SessionCapture] = None
    capture: Dict[str, CaptureSource] = field(default_factory=dict)
    validate: List[ValidationGroup] = field(default_factory=list)


@dataclass(frozen=True)
class HandlerCall:
    handler: str
    params: Dict[str, Any] = field(default_factory=dict)
    comment: Optional[str] = None
    delay_ms: Optional[float] = None

    @property
    def description(self) -> str:
        return f"{self.handler}({self.comment})" if self.comment else self.handler


@dataclass(frozen=True)
class RequestStep(Step):
    request: RequestSpec
    response: ResponseSpec = field(default_factory=ResponseSpec)
    handlers: List[HandlerCall] = field(default_factory=list)
