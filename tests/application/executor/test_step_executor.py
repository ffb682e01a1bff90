# tests/application/executor/test_step_executor.py
import pytest

from application.config import RunOptions
from application.executor.handler_registry import HandlerRegistry
from application.executor.step_executor import StepExecutor
from application.handlers.base import StepHandler, step_label
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from application.services.template_renderer import TemplateRenderer
from domain.errors import ExtractionError, HandlerError, StructuralError, ValidationFailure
from domain.result import CheckDetail, StepResult, ValidationResult
from domain.run import RunContext
from domain.scope import Scope
from domain.steps import HandlerCall, RequestSpec, RequestStep
from domain.steps.base import Step
from infrastructure.logging.recording_logger import RecordingLogger
from mock_http_client import MockHttpClient


class DummyTestStep(Step):
    """A dummy test step for testing"""


def make_result(label, ok=True):
    return StepResult(step=label, validation=ValidationResult(result=ok), vars={}, sessions={})


class RecordingHandler(StepHandler):
    """Produces one result per step; raises the mapped error for chosen labels."""

    def __init__(self, errors=None):
        self.handled = []
        self.errors = errors or {}

    def supports(self, step: Step) -> bool:
        return isinstance(step, DummyTestStep)

    def handle(self, step, ctx, deps):
        self.handled.append((step.label, dict(ctx.scope.vars)))
        if step.label in self.errors:
            raise self.errors[step.label]
        return StepOutcome(results=[make_result(step_label(step, ctx, deps))])


class TestStepExecutor:
    def create_deps(self, **options):
        self.sleeps = []
        return ExecutionDeps(
            http_client=MockHttpClient(),
            logger=RecordingLogger(),
            renderer=TemplateRenderer(),
            options=RunOptions(**options),
            sleep=self.sleeps.append,
        )

    def create_executor(self, handler):
        return StepExecutor(registry=HandlerRegistry([handler]))

    def test_execute_runs_steps_in_order(self):
        handler = RecordingHandler()
        steps = [DummyTestStep(name="step1"), DummyTestStep(name="step2"), DummyTestStep(name="step3")]

        results = self.create_executor(handler).execute(steps, RunContext(run_id="r"), self.create_deps())

        assert [r.step for r in results] == ["step1", "step2", "step3"]
        assert [h[0] for h in handler.handled] == ["step1", "step2", "step3"]

    def test_execute_assigns_run_id(self):
        ctx = RunContext()
        deps = self.create_deps()

        self.create_executor(RecordingHandler()).execute([DummyTestStep(name="a")], ctx, deps)

        assert ctx.run_id
        assert deps.logger.events("step.start")[0].fields["run_id"] == ctx.run_id

    def test_step_vars_and_edits_apply_before_the_handler(self):
        handler = RecordingHandler()
        ctx = RunContext(run_id="r", scope=Scope(vars={"name": "bob", "user": {"id": 1, "role": "x"}}))
        step = DummyTestStep(
            name="s",
            vars={"greeting": "hi {{name}}", "copy": "{{user}}", "n": 3},
            edits={"user": {"role": "admin"}, "flag": True},
        )

        self.create_executor(handler).execute([step], ctx, self.create_deps())

        seen = handler.handled[0][1]
        assert seen["greeting"] == "hi bob"
        assert seen["copy"] == {"id": 1, "role": "x"}
        assert seen["n"] == 3
        assert seen["user"] == {"id": 1, "role": "admin"}
        assert seen["flag"] is True

    def test_delay_and_rendered_label(self):
        ctx = RunContext(run_id="r", scope=Scope(vars={"entity": "order"}))
        deps = self.create_deps()

        results = self.create_executor(RecordingHandler()).execute(
            [DummyTestStep(name="create {{entity}}", delay_ms=1500)], ctx, deps
        )

        assert self.sleeps == [1.5]
        assert results[0].step == "create order"

    def test_unrenderable_label_keeps_the_raw_name(self):
        deps = self.create_deps()

        results = self.create_executor(RecordingHandler()).execute(
            [DummyTestStep(name="create {{missing}}")], RunContext(run_id="r"), deps
        )

        assert results[0].step == "create {{missing}}"
        assert deps.logger.events("step.label_unrendered")

    def test_runtime_error_propagates_with_partial_results(self):
        handler = RecordingHandler(errors={"b": ExtractionError("no header")})
        steps = [DummyTestStep(name="a"), DummyTestStep(name="b"), DummyTestStep(name="c")]

        with pytest.raises(ExtractionError) as exc_info:
            self.create_executor(handler).execute(steps, RunContext(run_id="r"), self.create_deps())

        assert [r.step for r in exc_info.value.partial_results] == ["a"]
        assert len(handler.handled) == 2

    def test_continue_on_error_records_a_runtime_result(self):
        handler = RecordingHandler(errors={"b": ExtractionError("no header")})
        steps = [DummyTestStep(name="a"), DummyTestStep(name="b"), DummyTestStep(name="c")]

        results = self.create_executor(handler).execute(
            steps, RunContext(run_id="r"), self.create_deps(continue_on_error=True)
        )

        assert [r.step for r in results] == ["a", "b", "c"]
        error_result = results[1]
        assert error_result.status == 0
        assert error_result.validation.name == "error"
        assert error_result.validation.details[0].to_dict() == {
            "name": "runtime",
            "check": "<internal error>",
            "error": "no header",
            "result": False,
        }

    def test_continue_on_error_keeps_results_of_a_failed_container(self):
        err = ExtractionError("inner")
        err.partial_results = [make_result("inner-1")]
        handler = RecordingHandler(errors={"loop": err})

        results = self.create_executor(handler).execute(
            [DummyTestStep(name="loop")], RunContext(run_id="r"), self.create_deps(continue_on_error=True)
        )

        assert [r.step for r in results] == ["inner-1", "loop"]

    def test_continue_on_error_replaces_a_failed_verdict_with_an_error_result(self):
        status = CheckDetail(name="status", check="status 200", rendered="expected 404", result=False)
        failed = make_result("a", ok=False)
        handler = RecordingHandler(errors={"a": ValidationFailure("invalid", [status], failed_result=failed)})
        steps = [DummyTestStep(name="a"), DummyTestStep(name="b")]

        results = self.create_executor(handler).execute(
            steps, RunContext(run_id="r"), self.create_deps(continue_on_error=True)
        )

        assert [r.step for r in results] == ["a", "b"]
        assert results[0] is not failed
        assert results[0].status == 0
        assert results[0].validation.name == "error"
        assert [d.name for d in results[0].validation.details] == ["status", "runtime"]
        assert results[0].validation.details[1].error == "invalid"

    def test_error_details_are_kept_in_the_error_result(self):
        check = CheckDetail(name="v", check="eq 1 1", rendered="true", result=True)
        handler = RecordingHandler(errors={"a": HandlerError("afterStep hook failed: boom", [check])})

        results = self.create_executor(handler).execute(
            [DummyTestStep(name="a")], RunContext(run_id="r"), self.create_deps(continue_on_error=True)
        )

        assert [d.name for d in results[0].validation.details] == ["v", "runtime"]

    def test_structural_errors_always_propagate(self):
        handler = RecordingHandler(errors={"a": StructuralError("bad")})

        with pytest.raises(StructuralError):
            self.create_executor(handler).execute(
                [DummyTestStep(name="a")], RunContext(run_id="r"), self.create_deps(continue_on_error=True)
            )

    def test_unknown_response_handler_fails_before_any_step(self):
        handler = RecordingHandler()
        steps = [
            DummyTestStep(name="a"),
            RequestStep(name="r", request=RequestSpec(method="GET", uri="/"), handlers=[HandlerCall(handler="nope")]),
        ]

        with pytest.raises(StructuralError, match="handler=nope not found for step=r"):
            self.create_executor(handler).execute(steps, RunContext(run_id="r"), self.create_deps())

        assert handler.handled == []
