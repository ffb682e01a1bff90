from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from domain.script import Script


class ScriptSourcePort(ABC):
    @abstractmethod
    def load(self, ref: str, base_dir: Optional[str] = None) -> Script:
        """
        Load a script by path (relative paths resolve against base_dir) or by
        script id.
        """
        ...
