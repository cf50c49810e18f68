"""Tests for the approval gate and ready-made approval callbacks."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from agentloop.exceptions import ApprovalDeniedError
from agentloop.orchestrator import (
    ApprovalGate,
    ApprovalOutcome,
    auto_approve,
    log_and_approve,
    reject_all,
)
from agentloop.orchestrator.approval import normalize_outcome, require_approval

from tests.conftest import make_capability

PROPOSED = {"filepath": "out.txt", "content": "hello"}


class ScriptedInput:
    """input_fn that answers from a script and records prompts."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


def make_gate(answers, max_rounds: int = 10):
    buf = io.StringIO()
    scripted = ScriptedInput(answers)
    gate = ApprovalGate(
        console=Console(file=buf, width=100),
        input_fn=scripted,
        max_rounds=max_rounds,
    )
    return gate, scripted, buf


def ask(gate, **kwargs):
    params = {"risky": True, "safe_mode": True}
    params.update(kwargs)
    return gate.request_approval("write_file", PROPOSED, "Save the report", **params)


# ===========================================================================
# Bypass and callbacks
# ===========================================================================


class TestApprovalBypass:
    """When no approval is needed."""

    def test_safe_capability_auto_approved(self):
        gate, scripted, _ = make_gate([])
        outcome = ask(gate, risky=False)
        assert outcome.approved
        assert outcome.input == PROPOSED
        assert scripted.prompts == []

    def test_safe_mode_off(self):
        gate, scripted, _ = make_gate([])
        assert ask(gate, safe_mode=False).approved
        assert scripted.prompts == []


class TestApprovalCallback:
    """Programmatic approval."""

    def test_callback_outcome_returned(self):
        gate, scripted, _ = make_gate([])
        outcome = ask(gate, callback=reject_all)
        assert not outcome.approved
        assert outcome.reason == "Auto-rejected"
        assert scripted.prompts == []

    def test_callback_receives_request(self):
        seen = []

        def callback(action, input, reasoning):
            seen.append((action, dict(input), reasoning))
            return ApprovalOutcome(approved=True, input=input)

        gate, _, _ = make_gate([])
        ask(gate, callback=callback)
        assert seen == [("write_file", PROPOSED, "Save the report")]

    def test_callback_mapping_result(self):
        gate, _, _ = make_gate([])
        outcome = ask(gate, callback=lambda a, i, r: {"approved": True, "input": {"filepath": "b.txt", "content": "x"}})
        assert outcome.approved
        assert outcome.input == {"filepath": "b.txt", "content": "x"}

    def test_callback_mapping_without_input_keeps_original(self):
        gate, _, _ = make_gate([])
        outcome = ask(gate, callback=lambda a, i, r: {"approved": False, "reason": "nope"})
        assert not outcome.approved
        assert outcome.input == PROPOSED
        assert outcome.reason == "nope"

    def test_callback_bad_return_type(self):
        gate, _, _ = make_gate([])
        with pytest.raises(TypeError):
            ask(gate, callback=lambda a, i, r: True)

    def test_auto_approve(self):
        assert auto_approve("x", PROPOSED, "").approved

    def test_log_and_approve(self, caplog):
        with caplog.at_level("INFO", logger="agentloop.orchestrator.approval"):
            assert log_and_approve("write_file", PROPOSED, "why").approved
        assert "write_file" in caplog.text


# ===========================================================================
# Interactive prompt
# ===========================================================================


class TestInteractivePrompt:
    """The bounded interactive approve/deny/edit/view loop."""

    @pytest.mark.parametrize("answer", ["y", "YES", ""])
    def test_approve(self, answer):
        gate, _, buf = make_gate([answer])
        outcome = ask(gate)
        assert outcome.approved
        assert outcome.input == PROPOSED
        assert "Approval required" in buf.getvalue()

    @pytest.mark.parametrize("answer", ["n", "no"])
    def test_deny(self, answer):
        gate, _, _ = make_gate([answer])
        outcome = ask(gate)
        assert not outcome.approved
        assert outcome.reason == "Denied by user"

    def test_edit_then_approve(self):
        gate, _, buf = make_gate(["e", '{"filepath": "safe.txt", "content": "hello"}', "y"])
        outcome = ask(gate)
        assert outcome.approved
        assert outcome.input == {"filepath": "safe.txt", "content": "hello"}
        assert "Edited input" in buf.getvalue()

    def test_edit_invalid_json_retries(self):
        gate, _, buf = make_gate(["e", "{not json", '{"filepath": "x"}', "y"])
        outcome = ask(gate)
        assert outcome.input == {"filepath": "x"}
        assert "Invalid JSON. Please try again." in buf.getvalue()

    def test_edit_non_object_retries(self):
        gate, _, buf = make_gate(["e", "[1, 2]", "", "y"])
        outcome = ask(gate)
        assert outcome.input == PROPOSED
        assert "must be a JSON object" in buf.getvalue()

    def test_edit_then_deny(self):
        gate, _, _ = make_gate(["e", '{"filepath": "z"}', "n"])
        outcome = ask(gate)
        assert not outcome.approved
        assert outcome.input == {"filepath": "z"}

    def test_view_shows_capability(self):
        capability = make_capability("write_file", description="Writes files to disk", risky=True)
        gate, _, buf = make_gate(["v", "y"])
        outcome = ask(gate, capability=capability)
        assert outcome.approved
        assert "Writes files to disk" in buf.getvalue()

    def test_view_without_metadata(self):
        gate, _, buf = make_gate(["v", "n"])
        ask(gate)
        assert "no capability metadata" in buf.getvalue()

    def test_invalid_choice_reprompts(self):
        gate, scripted, buf = make_gate(["maybe", "y"])
        assert ask(gate).approved
        assert len(scripted.prompts) == 2
        assert "Invalid choice" in buf.getvalue()

    def test_eof_denies(self):
        gate, _, _ = make_gate([])
        outcome = ask(gate)
        assert not outcome.approved
        assert outcome.reason == "Input closed"

    def test_keyboard_interrupt_denies(self):
        gate, _, _ = make_gate([KeyboardInterrupt()])
        assert ask(gate).reason == "Input closed"

    def test_bounded_rounds(self):
        gate, scripted, _ = make_gate(["v"] * 50, max_rounds=3)
        outcome = ask(gate)
        assert not outcome.approved
        assert outcome.reason == "No decision after maximum prompts"
        assert len(scripted.prompts) == 3

    def test_markup_in_reasoning_is_escaped(self):
        buf = io.StringIO()
        gate = ApprovalGate(console=Console(file=buf, width=100), input_fn=lambda p: "y")
        gate.request_approval(
            "write_file", {"content": "[bold]x[/bold]"}, "use [red]care[/red]",
            risky=True, safe_mode=True,
        )
        assert "[red]care[/red]" in buf.getvalue()

    def test_max_rounds_validated(self):
        with pytest.raises(ValueError):
            ApprovalGate(max_rounds=0)


# ===========================================================================
# Helpers
# ===========================================================================


class TestOutcomeHelpers:
    """normalize_outcome and require_approval."""

    def test_normalize_passthrough(self):
        outcome = ApprovalOutcome(approved=True, input={"a": 1})
        assert normalize_outcome(outcome, {}) is outcome

    def test_require_approval_passes(self):
        outcome = ApprovalOutcome(approved=True)
        assert require_approval(outcome, "x") is outcome

    def test_require_approval_raises(self):
        with pytest.raises(ApprovalDeniedError) as exc_info:
            require_approval(ApprovalOutcome(approved=False, reason="Auto-rejected"), "write_file")
        assert exc_info.value.action == "write_file"
        assert "Auto-rejected" in str(exc_info.value)
