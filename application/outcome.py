from dataclasses import dataclass, field
from typing import List

from domain.result import StepResult


@dataclass(frozen=True)
class StepOutcome:
    # leaf results produced by the step, flattened for containers
    results: List[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.validation.result for r in self.results)
