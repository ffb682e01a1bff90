# infrastructure/script/file_script_source.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

from application.ports.script_source import ScriptSourcePort
from domain.script import Script
from infrastructure.script.base_loader import ScriptLoadError
from infrastructure.script.file_finder import ScriptFileFinder
from infrastructure.script.loader_registry import SUPPORTED_SUFFIXES, ScriptLoaderRegistry


class FileScriptSource(ScriptSourcePort):
    """
    Resolves include/loop references.

    A reference ending in .json/.yaml/.yml is a path (relative paths resolve
    against the including script's directory). Anything else is a script id
    searched under that directory.
    """

    def __init__(self, base_dir: Optional[str] = None, registry: Optional[ScriptLoaderRegistry] = None):
        self._base_dir = base_dir
        self._registry = registry or ScriptLoaderRegistry()

    def load(self, ref: str, base_dir: Optional[str] = None) -> Script:
        root = Path(base_dir or self._base_dir or ".")
        path = self._resolve(ref, root)
        return self._registry.get_loader(path).load_from_file(path)

    def _resolve(self, ref: str, root: Path) -> Path:
        candidate = Path(ref)
        if candidate.suffix.lower() in SUPPORTED_SUFFIXES:
            return candidate if candidate.is_absolute() else root / candidate

        found = ScriptFileFinder(root).find_by_id(ref)
        if found is None:
            raise ScriptLoadError(f"script={ref} not found under {root}")
        return found
