# domain/steps/loop.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Union

from domain.steps.base import Step


@dataclass(frozen=True)
class LoopSpec:
    # literal list, or the name of a variable holding one
    items: Union[List[Any], str]
    var_name: str
    index_var_name: Optional[str] = None
    start: int = 0
    steps: Optional[List[Step]] = None
    include: Optional[str] = None


@dataclass(frozen=True)
class LoopStep(Step):
    loop: LoopSpec
