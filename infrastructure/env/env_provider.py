# infrastructure/env/env_provider.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values


class EnvProvider:
    """
    .envファイルと環境変数から {{env.NAME}} 用の値を提供する

    .envファイルの値が環境変数より優先される。
    """

    def __init__(self, env_file: Optional[str | Path] = None, include_os_environ: bool = True):
        self._env_vars: Dict[str, str] = {}
        if env_file is not None and Path(env_file).exists():
            self._env_vars = {k: v for k, v in dotenv_values(env_file).items() if v is not None}

        if include_os_environ:
            for key, value in os.environ.items():
                if key not in self._env_vars:
                    self._env_vars[key] = value

    def get(self) -> Dict[str, str]:
        return dict(self._env_vars)
