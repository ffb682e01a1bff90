# application/engine.py
"""
Script engine: entry point that runs a whole Script.
"""
from __future__ import annotations

import os
import time
import uuid
from dataclasses import replace
from typing import Callable, Optional

from application.config import RunOptions
from application.executor.step_executor import StepExecutor
from application.ports.http_client import HttpClientPort
from application.ports.logger import LoggerPort
from application.ports.multipart_encoder import MultipartEncoderPort
from application.ports.script_source import ScriptSourcePort
from application.services.execution_deps import ExecutionDeps
from application.services.operators import OperatorRegistry
from application.services.template_renderer import TemplateRenderer
from domain.errors import ScriptError, StructuralError
from domain.result import ScriptResult
from domain.run import RunContext
from domain.scope import Scope, copy_vars
from domain.script import Script


class ScriptEngine:
    def __init__(
        self,
        http_client: HttpClientPort,
        logger: LoggerPort,
        multipart_encoder: Optional[MultipartEncoderPort] = None,
        script_source: Optional[ScriptSourcePort] = None,
        executor: Optional[StepExecutor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._http = http_client
        self._logger = logger
        self._multipart = multipart_encoder
        self._script_source = script_source
        self._executor = executor or StepExecutor()
        self._sleep = sleep

    def run(self, script: Script, options: Optional[RunOptions] = None) -> ScriptResult:
        options = options or RunOptions()
        init = script.init.merged(options.init)
        if not init.servers:
            raise StructuralError(f"script={script.name} has no servers defined in init")

        run_id = uuid.uuid4().hex
        logger = self._logger.bind(run_id=run_id, script=script.name)

        renderer = TemplateRenderer(OperatorRegistry(options.helpers))
        env = dict(options.env)
        servers = [replace(s, base=renderer.render(s.base, {"env": env})) for s in init.servers]

        if script.source_path:
            base_dir = os.path.dirname(os.path.abspath(script.source_path))
        else:
            base_dir = options.base_dir

        ctx = RunContext(
            run_id=run_id,
            scope=Scope(vars=copy_vars(init.vars), sessions=dict(init.sessions), env=env),
            servers=servers,
            handlers=dict(init.handlers),
            before_step=init.before_step,
            after_step=init.after_step,
            base_dir=base_dir,
        )
        deps = ExecutionDeps(
            http_client=self._http,
            logger=logger,
            renderer=renderer,
            options=options,
            multipart_encoder=self._multipart,
            script_source=self._script_source,
            sleep=self._sleep,
        )

        logger.info(
            "script.start",
            steps=len(script.steps),
            servers={s.name: s.base for s in servers},
            continue_on_invalid=options.continue_on_invalid,
            continue_on_error=options.continue_on_error,
        )
        t0 = time.perf_counter()
        try:
            results = self._executor.execute(script.steps, ctx, deps)
        except ScriptError as e:
            logger.error(
                "script.failed",
                error_type=type(e).__name__,
                error=str(e),
                results=len(e.partial_results),
            )
            raise

        result = ScriptResult(script=script, step_results=results)
        logger.info(
            "script.end",
            ok=result.ok,
            results=len(results),
            elapsed_ms=int((time.perf_counter() - t0) * 1000),
        )
        return result
