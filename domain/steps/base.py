# domain/steps/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Step:
    name: Optional[str] = field(default=None, kw_only=True)
    comment: Optional[str] = field(default=None, kw_only=True)
    delay_ms: Optional[float] = field(default=None, kw_only=True)
    server: Optional[str] = field(default=None, kw_only=True)
    # evaluated into scope before the step runs
    vars: Dict[str, Any] = field(default_factory=dict, kw_only=True)
    edits: Dict[str, Any] = field(default_factory=dict, kw_only=True)

    @property
    def label(self) -> str:
        return self.name or "(unnamed)"
