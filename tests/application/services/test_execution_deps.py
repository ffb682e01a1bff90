# tests/application/services/test_execution_deps.py
import dataclasses

import pytest

from application.config import RunOptions
from application.services.execution_deps import ExecutionDeps
from application.services.template_renderer import TemplateRenderer
from domain.errors import StructuralError
from infrastructure.logging.recording_logger import RecordingLogger
from mock_http_client import MockHttpClient


def make_deps(**kwargs):
    return ExecutionDeps(http_client=MockHttpClient(), logger=RecordingLogger(), renderer=TemplateRenderer(), **kwargs)


class TestExecutionDeps:
    def test_defaults(self):
        deps = make_deps()

        assert deps.options == RunOptions()
        assert deps.options.context_dump_limit == 1000
        assert deps.script_source is None

    def test_with_logger_replaces_only_the_logger(self):
        deps = make_deps()
        bound = deps.logger.bind(run_id="r1")

        copy = deps.with_logger(bound)

        assert copy.logger is bound
        assert copy.http_client is deps.http_client
        assert deps.logger is not bound

    def test_frozen(self):
        deps = make_deps()

        with pytest.raises(dataclasses.FrozenInstanceError):
            deps.logger = RecordingLogger()

    def test_missing_collaborators_are_structural_errors(self):
        deps = make_deps()

        with pytest.raises(StructuralError, match="script source"):
            deps.require_script_source()
        with pytest.raises(StructuralError, match="multipart encoder"):
            deps.require_multipart_encoder()
