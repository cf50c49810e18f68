"""Agentloop exception hierarchy.

All agentloop-specific exceptions inherit from AgentLoopError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentloop.toolkit.validation import ValidationIssue


class AgentLoopError(Exception):
    """Base exception for all agentloop errors."""


class NameConflictError(AgentLoopError):
    """Raised when capability registration collides with existing names.

    Batch registration is all-or-nothing, so ``names`` lists every
    colliding name found in the batch.
    """

    def __init__(self, names: list[str] | tuple[str, ...]) -> None:
        self.names = tuple(names)
        super().__init__(
            "Capability name conflict: " + ", ".join(repr(n) for n in self.names)
        )


class UnknownCapabilityError(AgentLoopError):
    """Raised when a decision names a capability that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown capability: {name}")


class CapabilityValidationError(AgentLoopError):
    """Raised when decision input fails the capability's parameter schema.

    Named CapabilityValidationError (not ValidationError) to avoid
    collision with pydantic.ValidationError.

    Attributes:
        action: Capability name the input was checked against.
        issues: Every violation found; never just the first one.
    """

    def __init__(self, action: str, issues: list[ValidationIssue]) -> None:
        self.action = action
        self.issues = list(issues)
        details = "; ".join(issue.message for issue in self.issues)
        super().__init__(
            f"Invalid input for '{action}' ({len(self.issues)} issue(s)): {details}"
        )


class ApprovalDeniedError(AgentLoopError):
    """Raised when a risky action is denied by the approval gate."""

    def __init__(self, action: str, reason: str = "") -> None:
        self.action = action
        self.reason = reason
        msg = f"Action '{action}' was not approved"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DecisionParseError(AgentLoopError):
    """Raised when the decision parser itself fails.

    A response that merely matches no format is not an error: the
    inference fallback always produces a decision. This is reserved for
    unusable input (e.g. a non-string response) or a crashing extractor.
    """


class CompactionError(AgentLoopError):
    """Raised when conversation compaction fails.

    The conversation state passed to the compactor is left unmodified.
    """


class BudgetExceededError(AgentLoopError):
    """Raised when the projected cost of the next request exceeds the ceiling."""

    def __init__(self, projected_cost: int, cost_ceiling: int) -> None:
        self.projected_cost = projected_cost
        self.cost_ceiling = cost_ceiling
        super().__init__(
            f"Cost budget exceeded: projected {projected_cost} units "
            f"(ceiling: {cost_ceiling})"
        )


class OrchestratorError(AgentLoopError):
    """Raised when the orchestrator is misconfigured or cannot proceed."""
