"""Configuration models for agentloop.

BudgetConfig holds the per-conversation cost budget and compaction
settings. It is a pydantic model so invalid combinations (e.g. a warning
threshold above the compaction threshold) fail at construction time.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from agentloop.budget.estimator import (
    DEFAULT_SAFETY_FACTOR,
    CostEstimator,
    EstimationStrategy,
)

DEFAULT_COST_CEILING = 200_000
DEFAULT_COMPACT_AT_FRACTION = 0.85
DEFAULT_WARNING_FRACTION = 0.80
DEFAULT_PRESERVE_RECENT_PAIRS = 2


class BudgetConfig(BaseModel):
    """Cost budget and compaction configuration for a conversation."""

    model_config = {"frozen": True}

    cost_ceiling: int = Field(default=DEFAULT_COST_CEILING, gt=0)
    compact_at_fraction: float = Field(default=DEFAULT_COMPACT_AT_FRACTION, gt=0.0, le=1.0)
    warning_fraction: float = Field(default=DEFAULT_WARNING_FRACTION, gt=0.0, le=1.0)
    preserve_recent_pairs: int = Field(default=DEFAULT_PRESERVE_RECENT_PAIRS, ge=0)
    auto_compact: bool = True
    estimation_strategy: EstimationStrategy = EstimationStrategy.FAST
    safety_factor: float = DEFAULT_SAFETY_FACTOR

    @field_validator("safety_factor")
    @classmethod
    def _safety_factor_is_margin(cls, value: float) -> float:
        if value <= 1.0:
            raise ValueError("safety_factor must be above 1.0 so estimates stay conservative")
        return value

    @model_validator(mode="after")
    def _warning_below_compaction(self) -> BudgetConfig:
        if self.warning_fraction >= self.compact_at_fraction:
            raise ValueError(
                f"warning_fraction ({self.warning_fraction}) must be below "
                f"compact_at_fraction ({self.compact_at_fraction})"
            )
        return self

    def build_estimator(self) -> CostEstimator:
        """Create the CostEstimator described by this config."""
        return CostEstimator(
            strategy=self.estimation_strategy,
            safety_factor=self.safety_factor,
        )
