# infrastructure/script/loader_registry.py
from __future__ import annotations

from pathlib import Path
from typing import Dict

from infrastructure.script.base_loader import ScriptLoaderBase, ScriptLoadError
from infrastructure.script.json_loader import JsonScriptLoader
from infrastructure.script.yaml_loader import YamlScriptLoader

SUPPORTED_SUFFIXES = (".json", ".yaml", ".yml")


class ScriptLoaderRegistry:
    def __init__(self) -> None:
        self._loaders: Dict[str, ScriptLoaderBase] = {
            ".yaml": YamlScriptLoader(),
            ".yml": YamlScriptLoader(),
            ".json": JsonScriptLoader(),
        }

    def get_loader(self, path: Path) -> ScriptLoaderBase:
        ext = path.suffix.lower()
        loader = self._loaders.get(ext)
        if loader is None:
            raise ScriptLoadError(f"Unsupported script format: {ext}")
        return loader
