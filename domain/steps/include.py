# domain/steps/include.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Union

from domain.steps.base import Step

if TYPE_CHECKING:
    from domain.script import Script


@dataclass(frozen=True)
class IncludeStep(Step):
    # a Script value, or a path / script id resolved by the script source
    include: Union["Script", str]
    params: Dict[str, Any] = field(default_factory=dict)
