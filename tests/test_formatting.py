"""Tests for rich pretty-printing and the agent prompt text."""

from __future__ import annotations

import io
import math

from agentloop.models import ConversationState
from agentloop.budget import BudgetTracker
from agentloop.orchestrator import (
    ActionKind,
    ActionRecord,
    LoopEvent,
    Orchestrator,
    RunResult,
    RunStatus,
)
from agentloop.prompts import build_agent_prompt
from agentloop.prompts.agent import RESPONSE_FORMAT

from tests.conftest import ScriptedModel, final, make_capability, tagged


class TestRunResultPprint:
    """pprint_run_result via RunResult.pprint."""

    def test_completed_run(self, registry):
        model = ScriptedModel([tagged("list_files"), final("Three files.")])
        result = Orchestrator(model, registry).run("List files")
        buf = io.StringIO()
        result.pprint(file=buf)
        out = buf.getvalue()
        assert "Agent Run" in out
        assert "List files" in out
        assert "list_files" in out
        assert "Three files." in out

    def test_markup_in_task_is_literal(self):
        result = RunResult(
            task="fix [bold]this[/bold]",
            status=RunStatus.FAILED,
            final_response="Task failed: [red]boom[/red]",
            iterations=1,
        )
        buf = io.StringIO()
        result.pprint(file=buf)
        out = buf.getvalue()
        assert "[bold]this[/bold]" in out
        assert "[red]boom[/red]" in out

    def test_events_and_records(self):
        result = RunResult(
            task="t",
            status=RunStatus.EXHAUSTED,
            final_response="Task incomplete (max iterations reached)",
            iterations=2,
            actions=(
                ActionRecord(1, "write_file", {}, ActionKind.DENIED, "Denied by user"),
                ActionRecord(2, "", {}, ActionKind.INVALID, "x" * 500),
            ),
            events=(LoopEvent("budget_warning", 2, {"projected_cost": 1}),),
        )
        buf = io.StringIO()
        result.pprint(file=buf)
        out = buf.getvalue()
        assert "denied" in out
        assert "(none)" in out
        assert "budget_warning" in out
        assert result.executed == []


class TestBudgetStatsPprint:
    """pprint_budget_stats via BudgetStats.pprint."""

    def test_manual_compaction_and_no_overhead(self):
        state = ConversationState(cost_ceiling=1000, auto_compact=False)
        state.append("user", "hello")
        buf = io.StringIO()
        BudgetTracker().stats(state).pprint(file=buf)
        out = buf.getvalue()
        assert "manual" in out
        assert "Overhead" not in out


class TestAgentPrompt:
    """build_agent_prompt text."""

    def test_lists_tools_and_format(self):
        caps = [make_capability("read_file", description="Read a file.", risky=False)]
        prompt = build_agent_prompt("/work", 5, caps)
        assert "working in: /work" in prompt
        assert "You have 5 iterations" in prompt
        assert "- read_file: Read a file." in prompt
        assert prompt.endswith(RESPONSE_FORMAT)

    def test_unlimited(self):
        assert "unlimited iterations" in build_agent_prompt(".", None, [])
        assert "unlimited iterations" in build_agent_prompt(".", math.inf, [])

    def test_no_tools(self):
        assert "(no tools available)" in build_agent_prompt(".", 3, [])
