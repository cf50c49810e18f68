"""Tests for ToolExecutor and ExecutionOutcome rendering."""

from __future__ import annotations

import logging

from agentloop.toolkit import ExecutionOutcome, ParamSpec, ParamType, ToolExecutor

from tests.conftest import RecordingHandler, make_capability


class TestToolExecutor:
    """Handler invocation and failure isolation."""

    def test_success(self, registry, list_files_handler):
        outcome = ToolExecutor().execute(registry.get("list_files"), {"directory": "src"})
        assert outcome.success
        assert outcome.value == ["a.py", "b.py", "c.py"]
        assert list_files_handler.calls == [{"directory": "src"}]

    def test_defaults_filled(self, registry, list_files_handler):
        ToolExecutor().execute(registry.get("list_files"), {})
        assert list_files_handler.calls == [{"directory": "."}]

    def test_undeclared_keys_not_passed(self, registry, write_file_handler):
        ToolExecutor().execute(
            registry.get("write_file"),
            {"filepath": "a.txt", "content": "hi", "overwrite": True},
        )
        assert write_file_handler.calls == [{"filepath": "a.txt", "content": "hi"}]

    def test_handler_exception_becomes_failed_outcome(self):
        handler = RecordingHandler(exc=PermissionError("read-only filesystem"))
        defn = make_capability("w", {"p": ParamSpec(ParamType.STRING)}, handler=handler)
        outcome = ToolExecutor().execute(defn, {"p": "x"})
        assert not outcome.success
        assert outcome.error == "PermissionError: read-only filesystem"
        assert outcome.value is None

    def test_failure_logged_at_debug(self, caplog):
        defn = make_capability("boom", handler=RecordingHandler(exc=ValueError("bad")))
        with caplog.at_level(logging.DEBUG, logger="agentloop.toolkit.executor"):
            ToolExecutor().execute(defn, {})
        assert any("boom" in r.getMessage() for r in caplog.records)


class TestExecutionOutcome:
    """Rendering outcomes as conversation text."""

    def test_render_string(self):
        assert ExecutionOutcome(True, "hello").render() == "hello"

    def test_render_string_list(self):
        assert ExecutionOutcome(True, ["a.py", "b.py"]).render() == "a.py\nb.py"

    def test_render_other_value(self):
        assert ExecutionOutcome(True, {"n": 1}).render() == "{'n': 1}"

    def test_render_none(self):
        assert ExecutionOutcome(True, None).render() == ""

    def test_render_error(self):
        assert ExecutionOutcome(False, error="KeyError: 'x'").render() == "KeyError: 'x'"
