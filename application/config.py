# application/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from domain.script import ScriptInit

DEFAULT_CONTEXT_DUMP_LIMIT = 1000


@dataclass(frozen=True)
class RunOptions:
    # keep running after a failed validation (the result still records it)
    continue_on_invalid: bool = False
    # keep running after a runtime error; the step gets a synthetic error result
    continue_on_error: bool = False
    env: Dict[str, str] = field(default_factory=dict)
    # run-time init, merged over the script's own init key by key
    init: Optional[ScriptInit] = None
    helpers: Dict[str, Callable[..., Any]] = field(default_factory=dict)
    # include / loop-include paths resolve here when the script has no source path
    base_dir: Optional[str] = None
    context_dump_limit: int = DEFAULT_CONTEXT_DUMP_LIMIT
