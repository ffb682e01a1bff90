from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from application.config import RunOptions
from application.ports.http_client import HttpClientPort
from application.ports.logger import LoggerPort
from application.ports.multipart_encoder import MultipartEncoderPort
from application.ports.script_source import ScriptSourcePort
from application.services.template_renderer import TemplateRenderer
from domain.errors import StructuralError


@dataclass(frozen=True)
class ExecutionDeps:
    http_client: HttpClientPort
    logger: LoggerPort
    renderer: TemplateRenderer
    options: RunOptions = field(default_factory=RunOptions)
    multipart_encoder: Optional[MultipartEncoderPort] = None
    script_source: Optional[ScriptSourcePort] = None
    sleep: Callable[[float], None] = time.sleep

    # ★logger 差し替えのためのコピー生成
    def with_logger(self, logger: LoggerPort) -> "ExecutionDeps":
        return replace(self, logger=logger)

    def require_script_source(self) -> ScriptSourcePort:
        if self.script_source is None:
            raise StructuralError("no script source configured to load included scripts")
        return self.script_source

    def require_multipart_encoder(self) -> MultipartEncoderPort:
        if self.multipart_encoder is None:
            raise StructuralError("no multipart encoder configured to send files")
        return self.multipart_encoder
