# infrastructure/script/yaml_loader.py
"""
YAMLスクリプトファイルを読み込む（dict への変換は parse_script が担当）
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from infrastructure.script.base_loader import ScriptLoadError, ScriptLoaderBase


class YamlScriptLoader(ScriptLoaderBase):
    def _load_file(self, path: Path) -> Any:
        with path.open("r", encoding="utf-8") as f:
            try:
                return yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ScriptLoadError(f"Script file is not valid YAML: {path}: {e}") from e
