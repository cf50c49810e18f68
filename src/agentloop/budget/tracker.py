"""Budget tracker: projected cost and threshold checks for a conversation.

The tracker is stateless apart from its estimator. All budget numbers
come from the ConversationState passed in, so one tracker can serve any
number of conversations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from agentloop.budget.estimator import CostEstimator

if TYPE_CHECKING:
    from agentloop.budget.estimator import CostEstimatorProtocol
    from agentloop.models.conversation import ConversationState
    from agentloop.toolkit.models import CapabilityDefinition

logger = logging.getLogger(__name__)

TOOL_OVERHEAD_BASE = 2000
TOOL_OVERHEAD_PER_CAPABILITY = 300


@dataclass(frozen=True)
class BudgetStats:
    """Snapshot of a conversation's budget usage.

    Attributes:
        user_turns: Number of user turns.
        assistant_turns: Number of assistant turns.
        cost_estimate: Current estimated cost, tool overhead included.
        cost_ceiling: Budget ceiling.
        remaining: ``cost_ceiling - cost_estimate`` (may be negative).
        tool_overhead: Cost reserved for capability descriptions.
        compaction_count: Compactions performed so far.
        last_compaction_time: When the last compaction happened, or None.
        auto_compact: Whether automatic compaction is enabled.
        compaction_threshold: Cost above which compaction triggers.
    """

    user_turns: int
    assistant_turns: int
    cost_estimate: int
    cost_ceiling: int
    remaining: int
    tool_overhead: int
    compaction_count: int
    last_compaction_time: datetime | None
    auto_compact: bool
    compaction_threshold: int

    @property
    def total_turns(self) -> int:
        return self.user_turns + self.assistant_turns

    @property
    def percentage(self) -> float:
        """Usage as a percentage of the ceiling, rounded to one decimal."""
        return round(100.0 * self.cost_estimate / self.cost_ceiling, 1)

    def pprint(self, file=None) -> None:
        """Pretty-print these stats using rich formatting."""
        from agentloop.formatting import pprint_budget_stats

        pprint_budget_stats(self, file=file)


class BudgetTracker:
    """Computes projected costs and compaction/warning decisions.

    Usage::

        tracker = BudgetTracker()
        projected = tracker.projected_cost(state, next_message)
        if tracker.needs_compaction(state, projected):
            ...
    """

    def __init__(self, estimator: CostEstimatorProtocol | None = None) -> None:
        self._estimator: CostEstimatorProtocol = estimator or CostEstimator()

    @property
    def estimator(self) -> CostEstimatorProtocol:
        return self._estimator

    def projected_cost(
        self,
        state: ConversationState,
        new_turn_text: str | None,
        tool_overhead: int | None = None,
    ) -> int:
        """Cost of the conversation once ``new_turn_text`` is appended.

        Args:
            state: Conversation to project from.
            new_turn_text: Content of the pending turn.
            tool_overhead: Overhead to charge. Defaults to the overhead
                already reserved in ``state``, so it is counted once.

        Returns:
            Turn costs + estimated cost of the new text + tool overhead.
        """
        overhead = state.tool_overhead if tool_overhead is None else tool_overhead
        return state.turn_cost + self._estimator.estimate(new_turn_text) + overhead

    def needs_compaction(self, state: ConversationState, projected: int) -> bool:
        return projected > state.compaction_threshold

    def needs_warning(
        self, state: ConversationState, projected: int | None = None
    ) -> bool:
        """True when usage (projected, or current if omitted) is past the warning threshold."""
        cost = state.cost_estimate if projected is None else projected
        return cost > state.warning_threshold

    def tool_overhead(
        self,
        capabilities: Iterable[CapabilityDefinition],
        calibrated: bool = False,
    ) -> int:
        """Cost to reserve for describing ``capabilities`` to the model.

        Args:
            capabilities: Capabilities offered in the request.
            calibrated: Price each rendered description with the estimator
                instead of using the flat per-capability constant.
        """
        capabilities = list(capabilities)
        if calibrated:
            return TOOL_OVERHEAD_BASE + sum(
                self._estimator.estimate(c.describe()) for c in capabilities
            )
        return TOOL_OVERHEAD_BASE + TOOL_OVERHEAD_PER_CAPABILITY * len(capabilities)

    def stats(self, state: ConversationState) -> BudgetStats:
        """Summarize the budget usage of ``state``."""
        user_turns = sum(1 for t in state.turns if t.role.value == "user")
        return BudgetStats(
            user_turns=user_turns,
            assistant_turns=len(state.turns) - user_turns,
            cost_estimate=state.cost_estimate,
            cost_ceiling=state.cost_ceiling,
            remaining=state.cost_ceiling - state.cost_estimate,
            tool_overhead=state.tool_overhead,
            compaction_count=state.compaction_count,
            last_compaction_time=state.last_compaction_time,
            auto_compact=state.auto_compact,
            compaction_threshold=state.compaction_threshold,
        )
