"""Named tool presets: curated subsets of the capability registry.

Four presets plus the pseudo-preset ``all``:
- ``read_only``: safe exploration, no writes or code execution.
- ``code_analysis``: inspect code structure.
- ``code_generation``: create and modify code files.
- ``data_analysis``: run code against data.

A preset selects by group tag, so custom capabilities that declare one
of these groups join the preset automatically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentloop.toolkit.builtin import (
    CODE_ANALYSIS,
    CODE_GENERATION,
    DATA_ANALYSIS,
    READ_ONLY,
)
from agentloop.toolkit.registry import ALL_GROUP

if TYPE_CHECKING:
    from agentloop.toolkit.registry import CapabilityRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolPreset:
    """A named selection of capabilities.

    Attributes:
        name: Preset identifier, also the group tag it selects.
        description: What the preset is for.
    """

    name: str
    description: str = ""

    def names(self, registry: CapabilityRegistry) -> list[str]:
        """Names of the registry's capabilities in this preset, in registration order."""
        return [d.name for d in registry.by_group(self.name)]


PRESETS: dict[str, ToolPreset] = {
    ALL_GROUP: ToolPreset(ALL_GROUP, "Every registered capability."),
    READ_ONLY: ToolPreset(READ_ONLY, "Safe exploration: no writes or code execution."),
    CODE_ANALYSIS: ToolPreset(CODE_ANALYSIS, "Analyze code structure."),
    CODE_GENERATION: ToolPreset(CODE_GENERATION, "Create or modify code files."),
    DATA_ANALYSIS: ToolPreset(DATA_ANALYSIS, "Work with data by running code."),
}


def get_preset(name: str) -> ToolPreset:
    """Look up a preset by name.

    Args:
        name: One of ``all``, ``read_only``, ``code_analysis``,
            ``code_generation``, ``data_analysis``.

    Returns:
        The matching ToolPreset.

    Raises:
        ValueError: If name is not a recognized preset.
    """
    preset = PRESETS.get(name)
    if preset is None:
        raise ValueError(
            f"Unknown preset '{name}'. Available: {list(PRESETS.keys())}"
        )
    return preset
