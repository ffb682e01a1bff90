from __future__ import annotations

from pathlib import Path

import pytest

from domain.errors import ValidationFailure
from infrastructure.factory import create_engine, load_script, run_script
from infrastructure.http.requests_client import RequestsHttpClient
from infrastructure.logging.recording_logger import RecordingLogger
from mock_http_client import MockHttpClient

PARENT = """
script: parent
init:
  servers:
    - server: api
      base: "{{env.API_BASE}}"
steps:
  - step: sub
    include: child.yaml
    params:
      who: bob
  - step: each
    loop:
      items: [1, 2]
      varName: n
      include: item
  - step: after
    request:
      get: /after/{{greeting}}
"""

CHILD = """
script: child
params:
  who: {required: true}
steps:
  - step: hello
    request:
      post: /echo
      body: {greeting: "hi-{{who}}"}
    response:
      vars:
        greeting: {body: echoed.greeting}
"""

ITEM = """
script: item
steps:
  - step: "item {{n}}"
    request:
      get: /items/{{n}}
"""


def write_scripts(tmp_path: Path) -> Path:
    (tmp_path / "parent.yaml").write_text(PARENT, encoding="utf-8")
    (tmp_path / "child.yaml").write_text(CHILD, encoding="utf-8")
    sub = tmp_path / "items"
    sub.mkdir()
    (sub / "item.yaml").write_text(ITEM, encoding="utf-8")
    return tmp_path / "parent.yaml"


def test_run_script_from_file(tmp_path: Path) -> None:
    http = MockHttpClient()

    result = run_script(
        write_scripts(tmp_path),
        env={"API_BASE": "http://mock.test"},
        http_client=http,
        logger=RecordingLogger(),
    )

    assert result.ok
    assert [r.step for r in result.step_results] == ["hello", "item 1", "item 2", "after"]
    assert result.step_results[1].stack == ["each"]
    assert http.last()["url"] == "http://mock.test/after/hi-bob"


def test_run_script_from_mapping_with_init_overrides() -> None:
    http = MockHttpClient()
    script = {"script": "inline", "steps": [{"step": "s", "request": {"get": "/status/500"}}]}

    with pytest.raises(ValidationFailure):
        run_script(script, init={"servers": [{"base": "http://mock.test"}]}, http_client=http, logger=RecordingLogger())

    result = run_script(
        script,
        init={"servers": [{"base": "http://mock.test"}]},
        continue_on_invalid=True,
        http_client=http,
        logger=RecordingLogger(),
    )
    assert result.ok is False


def test_load_script_passes_scripts_through(tmp_path: Path) -> None:
    script = load_script(write_scripts(tmp_path))

    assert script.name == "parent"
    assert load_script(script) is script
    assert load_script({"script": "m", "steps": []}).name == "m"


def test_create_engine_defaults() -> None:
    engine = create_engine(timeout_sec=3)

    assert isinstance(engine._http, RequestsHttpClient)


def test_run_script_reads_the_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("API_BASE=http://from-file.test\nGREETING=hi\n", encoding="utf-8")
    script = {
        "script": "env",
        "init": {"servers": [{"base": "{{env.API_BASE}}"}]},
        "steps": [{"step": "s", "request": {"get": "/greet/{{env.GREETING}}"}}],
    }
    http = MockHttpClient()

    result = run_script(
        script,
        env_file=env_file,
        env={"API_BASE": "http://mock.test"},
        http_client=http,
        logger=RecordingLogger(),
    )

    assert result.ok
    assert http.last()["url"] == "http://mock.test/greet/hi"
