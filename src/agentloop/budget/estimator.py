"""Cost estimation for conversation turns.

Provides a character-ratio estimator (production default) and an optional
tiktoken-backed estimator for calibrating the ratios. Both implement the
CostEstimatorProtocol.

Costs are deliberately pessimistic: the default estimator multiplies the
ratio-based estimate by a safety factor so the result is an upper bound.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

DEFAULT_SAFETY_FACTOR = 1.15


class EstimationStrategy(str, enum.Enum):
    """Length-to-cost ratios for character-based estimation.

    - ``FAST``: 3.0 characters per unit, typical mixed code and prose.
    - ``CONSERVATIVE``: 2.5 characters per unit, dense code or data.
    - ``OPTIMISTIC``: 3.5 characters per unit, prose-heavy content.
    """

    FAST = "fast"
    CONSERVATIVE = "conservative"
    OPTIMISTIC = "optimistic"

    @property
    def chars_per_unit(self) -> float:
        return _CHARS_PER_UNIT[self]


_CHARS_PER_UNIT: dict[EstimationStrategy, float] = {
    EstimationStrategy.FAST: 3.0,
    EstimationStrategy.CONSERVATIVE: 2.5,
    EstimationStrategy.OPTIMISTIC: 3.5,
}


@runtime_checkable
class CostEstimatorProtocol(Protocol):
    """Anything that maps text to an integer cost."""

    def estimate(self, text: str | None) -> int:
        ...


def estimate_cost(
    text: str | None,
    strategy: EstimationStrategy | str = EstimationStrategy.FAST,
    safety_factor: float = DEFAULT_SAFETY_FACTOR,
) -> int:
    """Estimate the cost of a piece of text.

    Args:
        text: Text to price. None and empty strings cost 0.
        strategy: Ratio to use, as an EstimationStrategy or its value.
        safety_factor: Multiplier applied to the raw ratio estimate.

    Returns:
        ``ceil(len(text) / chars_per_unit * safety_factor)``.
    """
    if not text:
        return 0
    strategy = EstimationStrategy(strategy)
    return int(math.ceil(len(text) / strategy.chars_per_unit * safety_factor))


@dataclass(frozen=True)
class CostEstimator:
    """Character-ratio estimator bound to a strategy and safety factor.

    Implements the CostEstimatorProtocol.
    """

    strategy: EstimationStrategy = EstimationStrategy.FAST
    safety_factor: float = DEFAULT_SAFETY_FACTOR

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategy", EstimationStrategy(self.strategy))
        if self.safety_factor <= 1.0:
            raise ValueError(
                f"safety_factor must be above 1.0, got {self.safety_factor}"
            )

    def estimate(self, text: str | None) -> int:
        """Estimate the cost of ``text`` with this estimator's settings."""
        return estimate_cost(text, self.strategy, self.safety_factor)


class TiktokenEstimator:
    """Estimator using tiktoken (OpenAI's tokenizer).

    Lazily imports tiktoken and caches the Encoding instance. Falls back
    to o200k_base encoding if model is unknown. Useful for calibrating the
    character ratios against a real tokenizer; requires the ``tokenizer``
    extra.

    Implements the CostEstimatorProtocol.
    """

    def __init__(
        self,
        model: str = "gpt-4o",
        encoding_name: str | None = None,
        safety_factor: float = 1.0,
    ) -> None:
        import tiktoken

        if encoding_name is not None:
            self._enc = tiktoken.get_encoding(encoding_name)
        else:
            try:
                self._enc = tiktoken.encoding_for_model(model)
            except KeyError:
                self._enc = tiktoken.get_encoding("o200k_base")

        self._safety_factor = safety_factor

    @property
    def encoding_name(self) -> str:
        """Name of the tiktoken encoding being used."""
        return self._enc.name

    def estimate(self, text: str | None) -> int:
        if not text:
            return 0
        return int(math.ceil(len(self._enc.encode(text)) * self._safety_factor))

    def chars_per_unit(self, sample: str) -> float:
        """Observed characters-per-token ratio for a sample text."""
        tokens = len(self._enc.encode(sample))
        return len(sample) / tokens if tokens else 0.0
