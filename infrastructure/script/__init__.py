# infrastructure/script/__init__.py
from infrastructure.script.base_loader import ScriptLoadError, ScriptLoaderBase
from infrastructure.script.file_script_source import FileScriptSource
from infrastructure.script.json_loader import JsonScriptLoader
from infrastructure.script.loader_registry import ScriptLoaderRegistry
from infrastructure.script.yaml_loader import YamlScriptLoader

__all__ = [
    "FileScriptSource",
    "ScriptLoadError",
    "ScriptLoaderBase",
    "ScriptLoaderRegistry",
    "YamlScriptLoader",
    "JsonScriptLoader",
]
