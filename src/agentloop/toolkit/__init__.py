"""Toolkit: capability definitions, registry, validation, and execution.

Provides the capability model, a conflict-checked registry, the
parameter validator, the isolating executor, built-in file and code
capabilities, and named presets.
"""

from agentloop.toolkit.builtin import get_builtin_capabilities
from agentloop.toolkit.executor import ToolExecutor
from agentloop.toolkit.models import (
    CapabilityDefinition,
    CapabilityHints,
    ExecutionOutcome,
    ParamSpec,
    ParamType,
)
from agentloop.toolkit.presets import PRESETS, ToolPreset, get_preset
from agentloop.toolkit.registry import (
    ALL_GROUP,
    CapabilityRegistry,
    CapabilitySource,
    StaticCapabilitySource,
)
from agentloop.toolkit.validation import (
    ValidationIssue,
    apply_defaults,
    check_input,
    validate_input,
)

__all__ = [
    "ALL_GROUP",
    "CapabilityDefinition",
    "CapabilityHints",
    "CapabilityRegistry",
    "CapabilitySource",
    "ExecutionOutcome",
    "PRESETS",
    "ParamSpec",
    "ParamType",
    "StaticCapabilitySource",
    "ToolExecutor",
    "ToolPreset",
    "ValidationIssue",
    "apply_defaults",
    "check_input",
    "get_builtin_capabilities",
    "get_preset",
    "validate_input",
]
