"""Orchestrator decision, approval, and result models.

Provides Decision, ParseResult, ApprovalOutcome, ActionRecord, LoopEvent,
and RunResult for the orchestrator's decide-approve-execute loop.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from agentloop.models.conversation import ConversationState
    from agentloop.orchestrator.config import LoopState, RunStatus


class DecisionStatus(str, enum.Enum):
    """Whether the model wants another step or is done."""

    CONTINUE = "continue"
    FINAL = "final"


@dataclass(frozen=True)
class Decision:
    """The model's parsed choice for one iteration.

    Frozen: a decision is never edited. Approval edits produce a new
    input mapping carried in ApprovalOutcome instead.

    Attributes:
        action: Capability name, or ``""`` when there is no action.
        input: Proposed parameters.
        reasoning: The model's explanation, or the final answer.
        status: ``continue`` or ``final``.
    """

    action: str = ""
    input: Mapping[str, Any] = field(default_factory=dict)
    reasoning: str = ""
    status: DecisionStatus = DecisionStatus.CONTINUE

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", DecisionStatus(self.status))
        object.__setattr__(self, "input", dict(self.input))

    @property
    def is_final(self) -> bool:
        return self.status is DecisionStatus.FINAL


@dataclass(frozen=True)
class ParseResult:
    """A decision plus the name of the extractor that produced it."""

    decision: Decision
    source: str


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of an approval request.

    Attributes:
        approved: Whether the action may run.
        input: Input to run with (possibly edited by the reviewer).
        reason: Optional explanation, e.g. why it was denied.
    """

    approved: bool
    input: Mapping[str, Any] = field(default_factory=dict)
    reason: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "input", dict(self.input))


class ActionKind(str, enum.Enum):
    """What happened to a proposed action."""

    EXECUTED = "executed"
    FAILED = "failed"
    DENIED = "denied"
    INVALID = "invalid"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ActionRecord:
    """History entry for one proposed action.

    Frozen: records are immutable once appended.
    """

    iteration: int
    action: str
    input: Mapping[str, Any]
    kind: ActionKind
    result: str = ""

    @property
    def success(self) -> bool:
        return self.kind is ActionKind.EXECUTED


@dataclass(frozen=True)
class LoopEvent:
    """Observability event emitted during a run.

    Attributes:
        kind: ``compaction``, ``compaction_failed``, or ``budget_warning``.
        iteration: Iteration the event happened in.
        detail: Event-specific data (costs, counts, error text).
    """

    kind: str
    iteration: int
    detail: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RunResult:
    """Final result of an orchestrator run.

    Frozen: the result is immutable once the run ends.

    Attributes:
        task: The task the run was started with.
        status: Terminal status (completed, exhausted, failed, cancelled).
        final_response: The model's answer, or a description of why the
            run stopped.
        iterations: Cycles actually started.
        actions: Every proposed action in order, including denied,
            invalid, and failed ones.
        error: The error that ended a failed run, if any.
        events: Compaction and budget-warning events.
        state: The final conversation state.
        loop_state: The orchestrator's terminal LoopState.
    """

    task: str
    status: RunStatus
    final_response: str
    iterations: int
    actions: tuple[ActionRecord, ...] = ()
    error: BaseException | None = None
    events: tuple[LoopEvent, ...] = ()
    state: ConversationState | None = None
    loop_state: LoopState | None = None

    @property
    def success(self) -> bool:
        return self.status.value == "completed"

    @property
    def executed(self) -> list[ActionRecord]:
        """Actions whose handler ran and succeeded."""
        return [a for a in self.actions if a.success]

    def pprint(self, file=None) -> None:
        """Pretty-print this result using rich formatting."""
        from agentloop.formatting import pprint_run_result

        pprint_run_result(self, file=file)
