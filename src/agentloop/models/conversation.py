"""Conversation turns and per-conversation budget state.

Turn is an immutable role-labelled message with its estimated cost.
ConversationState owns the ordered turn sequence of one orchestrator run
and keeps ``cost_estimate`` equal to the sum of turn costs plus the
reserved tool-description overhead. The estimate is recomputed from the
turns after every structural change, never adjusted incrementally.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

from agentloop.budget.estimator import CostEstimator

if TYPE_CHECKING:
    from agentloop.budget.estimator import CostEstimatorProtocol
    from agentloop.models.config import BudgetConfig


class Role(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TurnKind(str, enum.Enum):
    """What produced a turn."""

    MESSAGE = "message"
    COMPACTION_SUMMARY = "compaction_summary"
    COMPACTION_ACK = "compaction_ack"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Turn:
    """One role-labelled message in a conversation.

    Frozen: turns are never edited once appended.
    """

    role: Role
    content: str
    cost: int
    kind: TurnKind = TurnKind.MESSAGE
    created_at: datetime = field(default_factory=_utcnow, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        object.__setattr__(self, "kind", TurnKind(self.kind))
        if self.cost < 0:
            raise ValueError(f"Turn cost must be non-negative, got {self.cost}")

    def to_message(self) -> dict[str, str]:
        """Convert to a chat-completions message dict."""
        return {"role": self.role.value, "content": self.content}


class ConversationState:
    """Turn history and cost accounting for a single conversation.

    Owned by exactly one orchestrator run. Mutated only through
    :meth:`append`; compaction produces a replacement via
    :meth:`with_turns` instead of editing in place.

    Usage::

        state = ConversationState(cost_ceiling=200_000)
        state.append("user", "List the files in the project.")
        print(state.cost_estimate, state.usage_fraction)
    """

    def __init__(
        self,
        *,
        cost_ceiling: int = 200_000,
        compact_at_fraction: float = 0.85,
        warning_fraction: float = 0.80,
        auto_compact: bool = True,
        tool_overhead: int = 0,
        estimator: CostEstimatorProtocol | None = None,
        turns: Iterable[Turn] = (),
        compaction_count: int = 0,
        last_compaction_time: datetime | None = None,
    ) -> None:
        if cost_ceiling <= 0:
            raise ValueError(f"cost_ceiling must be positive, got {cost_ceiling}")
        if tool_overhead < 0:
            raise ValueError(f"tool_overhead must be non-negative, got {tool_overhead}")
        self.cost_ceiling = cost_ceiling
        self.compact_at_fraction = compact_at_fraction
        self.warning_fraction = warning_fraction
        self.auto_compact = auto_compact
        self.estimator: CostEstimatorProtocol = estimator or CostEstimator()
        self.compaction_count = compaction_count
        self.last_compaction_time = last_compaction_time
        self._tool_overhead = tool_overhead
        self._turns: tuple[Turn, ...] = tuple(turns)
        self._cost_estimate = 0
        self._recompute()

    @classmethod
    def from_config(
        cls,
        config: BudgetConfig,
        *,
        tool_overhead: int = 0,
        estimator: CostEstimatorProtocol | None = None,
    ) -> ConversationState:
        """Build an empty state from a BudgetConfig."""
        return cls(
            cost_ceiling=config.cost_ceiling,
            compact_at_fraction=config.compact_at_fraction,
            warning_fraction=config.warning_fraction,
            auto_compact=config.auto_compact,
            tool_overhead=tool_overhead,
            estimator=estimator or config.build_estimator(),
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def turns(self) -> tuple[Turn, ...]:
        return self._turns

    @property
    def tool_overhead(self) -> int:
        return self._tool_overhead

    @property
    def turn_cost(self) -> int:
        """Sum of the costs of all turns, excluding tool overhead."""
        return self._cost_estimate - self._tool_overhead

    @property
    def cost_estimate(self) -> int:
        return self._cost_estimate

    @property
    def compaction_threshold(self) -> int:
        return int(self.cost_ceiling * self.compact_at_fraction)

    @property
    def warning_threshold(self) -> int:
        return int(self.cost_ceiling * self.warning_fraction)

    @property
    def usage_fraction(self) -> float:
        return self._cost_estimate / self.cost_ceiling

    def __len__(self) -> int:
        return len(self._turns)

    def __repr__(self) -> str:
        return (
            f"ConversationState(turns={len(self._turns)}, "
            f"cost_estimate={self._cost_estimate}, "
            f"cost_ceiling={self.cost_ceiling}, "
            f"compaction_count={self.compaction_count})"
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def make_turn(
        self,
        role: Role | str,
        content: str,
        kind: TurnKind = TurnKind.MESSAGE,
    ) -> Turn:
        """Create a turn priced with this state's estimator (not appended)."""
        return Turn(
            role=Role(role),
            content=content,
            cost=self.estimator.estimate(content),
            kind=kind,
        )

    def append(self, role: Role | str, content: str) -> Turn:
        """Append a new turn and return it."""
        turn = self.make_turn(role, content)
        self._turns = self._turns + (turn,)
        self._recompute()
        return turn

    def set_tool_overhead(self, tool_overhead: int) -> None:
        """Change the reserved tool-description overhead."""
        if tool_overhead < 0:
            raise ValueError(f"tool_overhead must be non-negative, got {tool_overhead}")
        self._tool_overhead = tool_overhead
        self._recompute()

    def with_turns(
        self,
        turns: Iterable[Turn],
        *,
        compaction_count: int | None = None,
        last_compaction_time: datetime | None = None,
    ) -> ConversationState:
        """Return a new state with the same settings and a different turn sequence.

        This state is not modified.
        """
        return ConversationState(
            cost_ceiling=self.cost_ceiling,
            compact_at_fraction=self.compact_at_fraction,
            warning_fraction=self.warning_fraction,
            auto_compact=self.auto_compact,
            tool_overhead=self._tool_overhead,
            estimator=self.estimator,
            turns=turns,
            compaction_count=(
                self.compaction_count if compaction_count is None else compaction_count
            ),
            last_compaction_time=(
                last_compaction_time
                if last_compaction_time is not None
                else self.last_compaction_time
            ),
        )

    def _recompute(self) -> None:
        self._cost_estimate = sum(t.cost for t in self._turns) + self._tool_overhead
