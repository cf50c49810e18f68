"""Orchestrator configuration types.

Provides LoopState, RunStatus, CompactionFailurePolicy, and
OrchestratorConfig.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Sequence

from agentloop.models.config import BudgetConfig

if TYPE_CHECKING:
    from agentloop.orchestrator.approval import ApprovalCallback
    from agentloop.orchestrator.models import ActionRecord, LoopEvent


class LoopState(str, enum.Enum):
    """States of the decision loop.

    ``INIT -> AWAIT_DECISION -> PARSE_OK | PARSE_FATAL -> TERMINAL_CHECK
    -> [APPROVAL] -> EXECUTE -> APPEND -> AWAIT_DECISION``, ending in one
    of the terminal states.
    """

    INIT = "init"
    AWAIT_DECISION = "await_decision"
    PARSE_OK = "parse_ok"
    PARSE_FATAL = "parse_fatal"
    TERMINAL_CHECK = "terminal_check"
    APPROVAL = "approval"
    EXECUTE = "execute"
    APPEND = "append"
    COMPLETED = "completed"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({
    LoopState.COMPLETED,
    LoopState.EXHAUSTED,
    LoopState.FAILED,
    LoopState.CANCELLED,
})


class RunStatus(str, enum.Enum):
    """How a run ended."""

    COMPLETED = "completed"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CompactionFailurePolicy(str, enum.Enum):
    """What to do when automatic compaction fails.

    - ``ABORT``: end the run as FAILED.
    - ``PROCEED``: keep going with the uncompacted conversation; the
      ceiling check still applies.
    """

    ABORT = "abort"
    PROCEED = "proceed"


@dataclass
class OrchestratorConfig:
    """Configuration for the agent loop.

    Mutable dataclass: callers may adjust settings between runs.

    Attributes:
        max_iterations: Iteration budget. None or ``math.inf`` means
            unbounded, which requires a cancel event at run time.
        safe_mode: Route risky capabilities through the approval gate.
        tools: Names of the enabled capabilities (None = all registered).
        working_dir: Directory named in the agent prompt.
        system_prompt: Override for the generated agent prompt.
        approval_callback: Programmatic approval instead of the
            interactive prompt.
        compaction_failure: Policy when automatic compaction fails.
        calibrated_overhead: Price tool descriptions with the estimator
            instead of a flat per-capability constant.
        budget: Cost budget and compaction settings.
        on_step: Called with each ActionRecord as it is recorded.
        on_event: Called with each LoopEvent as it is emitted.
    """

    max_iterations: int | float | None = 10
    safe_mode: bool = True
    tools: Sequence[str] | None = None
    working_dir: str = "."
    system_prompt: str | None = None
    approval_callback: ApprovalCallback | None = None
    compaction_failure: CompactionFailurePolicy = CompactionFailurePolicy.ABORT
    calibrated_overhead: bool = False
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    on_step: Callable[[ActionRecord], None] | None = None
    on_event: Callable[[LoopEvent], None] | None = None

    def __post_init__(self) -> None:
        self.compaction_failure = CompactionFailurePolicy(self.compaction_failure)
        if self.max_iterations is not None and not self.is_unbounded:
            if self.max_iterations < 1:
                raise ValueError(
                    f"max_iterations must be at least 1, got {self.max_iterations}"
                )

    @property
    def is_unbounded(self) -> bool:
        return self.max_iterations is None or math.isinf(self.max_iterations)
