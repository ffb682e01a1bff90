# infrastructure/script/base_loader.py
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from domain.errors import StructuralError
from domain.script import Script
from domain.script_parser import parse_script


class ScriptLoadError(StructuralError):
    pass


class ScriptLoaderBase(ABC):
    def load_from_file(self, path: str | Path) -> Script:
        p = Path(path)
        if not p.is_file():
            raise ScriptLoadError(f"Script file not found: {path}")

        data = self._load_file(p)

        if data is None:
            raise ScriptLoadError(f"Script file is empty: {path}")

        if not isinstance(data, dict):
            raise ScriptLoadError(f"Script file is invalid (top level must be a mapping): {path}")

        return parse_script(data, source_path=str(p))

    @abstractmethod
    def _load_file(self, path: Path) -> Any:
        raise NotImplementedError
