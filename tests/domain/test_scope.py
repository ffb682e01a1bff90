# tests/domain/test_scope.py
import threading

from domain.run import RunContext
from domain.scope import Scope
from domain.script import Server
from domain.steps import LoopSpec, LoopStep


def test_template_context_exposes_vars_sessions_and_env():
    scope = Scope(vars={"a": 1}, sessions={"alice": "tok"}, env={"HOME": "/root"})

    cx = scope.template_context()

    assert cx["a"] == 1
    assert cx["alice"] == "tok"
    assert cx["env"]["HOME"] == "/root"


def test_fork_copies_vars_and_shares_sessions():
    parent = Scope(vars={"a": 1}, sessions={})
    child = parent.fork({"item": "x"})

    child.vars["b"] = 2
    child.sessions["s"] = "t"

    assert "b" not in parent.vars
    assert "item" not in parent.vars
    assert parent.sessions == {"s": "t"}


def test_merge_back_skips_bindings():
    parent = Scope(vars={"a": 1})
    child = parent.fork({"item": "x"})
    child.vars["a"] = 10
    child.vars["new"] = True

    parent.merge_back(child, ["item"])

    assert parent.vars == {"a": 10, "new": True}


def test_snapshot_is_a_deep_copy():
    scope = Scope(vars={"list": [1]})
    snap_vars, _ = scope.snapshot()
    scope.vars["list"].append(2)

    assert snap_vars["list"] == [1]


def test_snapshot_shares_values_that_cannot_be_copied():
    lock = threading.Lock()
    scope = Scope(vars={"lock": lock, "list": [1]})

    snap_vars, _ = scope.snapshot()

    assert snap_vars["lock"] is lock
    assert snap_vars["list"] == [1] and snap_vars["list"] is not scope.vars["list"]


class TestRunContext:
    def test_server_lookup(self):
        a, b = Server(name="a", base="http://a"), Server(name="b", base="http://b")
        ctx = RunContext(servers=[a, b])

        assert ctx.server(None) is a
        assert ctx.server("b") is b
        assert ctx.server("zzz") is None
        assert RunContext().server(None) is None

    def test_fork_pushes_the_container_on_the_stack(self):
        step = LoopStep(name="outer", loop=LoopSpec(items=[], var_name="i", steps=[]))
        ctx = RunContext(base_dir="/scripts")

        child = ctx.fork({"i": 0}, step)

        assert child.stack_names() == ["outer"]
        assert ctx.stack_names() == []
        assert child.base_dir == "/scripts"
        assert child.scope.vars == {"i": 0}


def test_server_url_for():
    server = Server(name="api", base="http://api.test/v1")

    assert server.url_for("/users") == "http://api.test/v1/users"
    assert server.url_for("users") == "http://api.test/v1/users"
    assert server.url_for("https://other/x") == "https://other/x"
