from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple


@dataclass(frozen=True)
class HttpResponse:
    status: int
    # in wire order, duplicates kept (several Set-Cookie headers)
    headers: List[Tuple[str, str]] = field(default_factory=list)
    # parsed JSON for application/json responses, text otherwise
    body: Any = ""
    url: str = ""


class HttpClientPort(ABC):
    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        headers: List[Tuple[str, str]],
        body: Optional[bytes | str] = None,
    ) -> HttpResponse:
        ...
