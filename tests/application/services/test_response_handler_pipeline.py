# tests/application/services/test_response_handler_pipeline.py
import pytest

from application.ports.http_client import HttpResponse
from application.services.response_handler_pipeline import ResponseHandlerPipeline, coerce_arg
from application.services.template_renderer import TemplateRenderer
from domain.errors import HandlerError
from domain.script import HandlerArg, RegisteredHandler
from domain.steps import HandlerCall, RequestSpec, RequestStep
from infrastructure.logging.recording_logger import RecordingLogger


def make_step(*calls):
    return RequestStep(name="s", request=RequestSpec(method="GET", uri="/"), handlers=list(calls))


class TestCoerceArg:
    def test_conversions(self):
        assert coerce_arg("5", "number", "x") == 5
        assert coerce_arg(5, "string", "x") == "5"
        assert coerce_arg("TRUE", "boolean", "x") is True
        assert coerce_arg('{"a": 1}', "object", "x") == {"a": 1}
        assert coerce_arg([1], "array", "x") == [1]
        assert coerce_arg(object, "any", "x") is object

    def test_mismatch(self):
        with pytest.raises(HandlerError, match="bad arg: expected array, got string"):
            coerce_arg("x", "array", "bad arg")


class TestResponseHandlerPipeline:
    def setup_method(self):
        self.sleeps = []
        self.pipeline = ResponseHandlerPipeline(TemplateRenderer(), sleep=self.sleeps.append)
        self.logger = RecordingLogger()
        self.response = HttpResponse(status=200, headers=[("A", "1")], body={"n": 1}, url="http://x/")

    def run(self, step, handlers, variables, cx=None):
        cx = dict(variables) if cx is None else cx
        return self.pipeline.run(step, handlers, self.response, cx, variables, {"alice": "tok"}, self.logger)

    def test_new_names_propagate_to_variables(self):
        seen = {}

        def handler(response, args, scope, step):
            seen.update(args=args, alice=scope["alice"], body=scope["body"])
            scope["added"] = args["n"] * 2
            scope["existing"] = "changed"
            return {"status": 299}

        registered = RegisteredHandler(func=handler, args={"n": HandlerArg(required=True, type="number")})
        variables = {"count": "3", "existing": "orig"}

        result = self.run(make_step(HandlerCall(handler="h", params={"n": "{{count}}"})), {"h": registered}, variables)

        assert seen == {"args": {"n": 3}, "alice": "tok", "body": {"n": 1}}
        assert variables["added"] == 6
        assert variables["existing"] == "orig"
        assert result.status == 299
        assert result.headers == [("A", "1")]

    def test_in_place_mutation_is_visible(self):
        def handler(response, args, scope, step):
            scope["cart"].append("x")

        variables = {"cart": []}
        result = self.run(make_step(HandlerCall(handler="h")), {"h": RegisteredHandler(func=handler)}, variables)

        assert variables["cart"] == ["x"]
        assert result is self.response

    def test_defaults_opaque_args_and_delay(self):
        captured = {}

        def handler(response, args, scope, step):
            captured.update(args)

        registered = RegisteredHandler(
            func=handler,
            args={"limit": HandlerArg(default=10), "tpl": HandlerArg(opaque=True)},
        )
        call = HandlerCall(handler="h", params={"tpl": "{{not_rendered}}"}, delay_ms=250)

        self.run(make_step(call), {"h": registered}, {})

        assert captured == {"limit": 10, "tpl": "{{not_rendered}}"}
        assert self.sleeps == [0.25]

    def test_missing_required_arg(self):
        registered = RegisteredHandler(func=lambda *a: None, args={"n": HandlerArg(required=True)})

        with pytest.raises(HandlerError, match="missing required arg=n"):
            self.run(make_step(HandlerCall(handler="h")), {"h": registered}, {})

    def test_unknown_handler(self):
        with pytest.raises(HandlerError, match="handler not found: h\\(why\\)"):
            self.run(make_step(HandlerCall(handler="h", comment="why")), {}, {})

    def test_handler_exception_is_wrapped(self):
        def handler(*args):
            raise ValueError("boom")

        with pytest.raises(HandlerError, match="handler=h failed: boom"):
            self.run(make_step(HandlerCall(handler="h")), {"h": RegisteredHandler(func=handler)}, {})

    def test_bad_return_value(self):
        with pytest.raises(HandlerError, match="returned int"):
            self.run(make_step(HandlerCall(handler="h")), {"h": RegisteredHandler(func=lambda *a: 5)}, {})

    def test_handlers_chain(self):
        first = RegisteredHandler(func=lambda r, a, s, st: HttpResponse(status=201, body="one"))
        second = RegisteredHandler(func=lambda r, a, s, st: {"body": r.body + "+two"})

        result = self.run(
            make_step(HandlerCall(handler="first"), HandlerCall(handler="second")),
            {"first": first, "second": second},
            {},
        )

        assert result.status == 201
        assert result.body == "one+two"
