"""Cost estimation and budget tracking."""

from agentloop.budget.estimator import (
    DEFAULT_SAFETY_FACTOR,
    CostEstimator,
    CostEstimatorProtocol,
    EstimationStrategy,
    TiktokenEstimator,
    estimate_cost,
)
from agentloop.budget.tracker import (
    TOOL_OVERHEAD_BASE,
    TOOL_OVERHEAD_PER_CAPABILITY,
    BudgetStats,
    BudgetTracker,
)

__all__ = [
    "DEFAULT_SAFETY_FACTOR",
    "TOOL_OVERHEAD_BASE",
    "TOOL_OVERHEAD_PER_CAPABILITY",
    "BudgetStats",
    "BudgetTracker",
    "CostEstimator",
    "CostEstimatorProtocol",
    "EstimationStrategy",
    "TiktokenEstimator",
    "estimate_cost",
]
