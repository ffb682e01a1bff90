# infrastructure/factory.py
"""
Default wiring: requests transport, urllib3 multipart, loguru logging and
file-based include resolution.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from application.config import DEFAULT_CONTEXT_DUMP_LIMIT, RunOptions
from application.engine import ScriptEngine
from application.ports.http_client import HttpClientPort
from application.ports.logger import LoggerPort
from domain.result import ScriptResult
from domain.script import Script
from domain.script_parser import parse_init, parse_script
from infrastructure.env.env_provider import EnvProvider
from infrastructure.http.multipart_encoder import UrllibMultipartEncoder
from infrastructure.http.requests_client import RequestsHttpClient
from infrastructure.logging.loguru_logger import LoguruLogger
from infrastructure.script.file_script_source import FileScriptSource
from infrastructure.script.loader_registry import ScriptLoaderRegistry


def create_engine(
    http_client: Optional[HttpClientPort] = None,
    logger: Optional[LoggerPort] = None,
    base_dir: Optional[str] = None,
    timeout_sec: float = 20,
) -> ScriptEngine:
    return ScriptEngine(
        http_client=http_client or RequestsHttpClient(timeout_sec=timeout_sec),
        logger=logger or LoguruLogger(),
        multipart_encoder=UrllibMultipartEncoder(),
        script_source=FileScriptSource(base_dir=base_dir),
    )


def load_script(script: Script | Mapping[str, Any] | str | Path) -> Script:
    if isinstance(script, Script):
        return script
    if isinstance(script, Mapping):
        return parse_script(script)
    path = Path(script)
    return ScriptLoaderRegistry().get_loader(path).load_from_file(path)


def run_script(
    script: Script | Mapping[str, Any] | str | Path,
    *,
    continue_on_invalid: bool = False,
    continue_on_error: bool = False,
    env: Optional[Mapping[str, str]] = None,
    env_file: Optional[str | Path] = None,
    init: Any = None,
    helpers: Optional[Dict[str, Callable[..., Any]]] = None,
    base_dir: Optional[str] = None,
    context_dump_limit: int = DEFAULT_CONTEXT_DUMP_LIMIT,
    engine: Optional[ScriptEngine] = None,
    http_client: Optional[HttpClientPort] = None,
    logger: Optional[LoggerPort] = None,
) -> ScriptResult:
    """
    Load (when given a path or a mapping) and run a script.

    ``init`` may be a ScriptInit or the same mapping shape the script file
    uses; its keys override the script's own init. With ``env_file`` the
    template environment starts from that .env file over ``os.environ``;
    entries in ``env`` take precedence.
    """
    loaded = load_script(script)
    if base_dir is None and loaded.source_path is None:
        base_dir = os.getcwd()

    options = RunOptions(
        continue_on_invalid=continue_on_invalid,
        continue_on_error=continue_on_error,
        env=_resolve_env(env, env_file),
        init=parse_init(init) if init is not None else None,
        helpers=dict(helpers or {}),
        base_dir=base_dir,
        context_dump_limit=context_dump_limit,
    )
    engine = engine or create_engine(http_client=http_client, logger=logger, base_dir=base_dir)
    return engine.run(loaded, options)


def _resolve_env(env: Optional[Mapping[str, str]], env_file: Optional[str | Path]) -> Dict[str, str]:
    resolved: Dict[str, str] = EnvProvider(env_file).get() if env_file is not None else {}
    resolved.update(env or {})
    return resolved
