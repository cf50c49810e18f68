"""Toolkit data models for agentloop capabilities.

Frozen dataclasses for capability definitions, parameter specs, hints,
and execution outcomes.
"""

from __future__ import annotations

import enum
import logging
import types
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class ParamType(str, enum.Enum):
    """Closed set of parameter types understood by the validator."""

    STRING = "string"
    TEXT_COLLECTION = "text_collection"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    LIST = "list"
    ANY = "any"


_JSON_SCHEMA_TYPES: dict[ParamType, dict] = {
    ParamType.STRING: {"type": "string"},
    ParamType.TEXT_COLLECTION: {
        "anyOf": [
            {"type": "string"},
            {"type": "array", "items": {"type": "string"}},
        ]
    },
    ParamType.NUMBER: {"type": "number"},
    ParamType.INTEGER: {"type": "integer"},
    ParamType.BOOLEAN: {"type": "boolean"},
    ParamType.LIST: {"type": "array"},
    ParamType.ANY: {},
}


@dataclass(frozen=True)
class ParamSpec:
    """Schema for a single capability parameter.

    Attributes:
        type: One of the closed ParamType values.
        required: Whether the parameter must be present (and not None).
        default: Value used by the executor when an optional parameter is absent.
        description: Human-readable description shown to the model and reviewers.
    """

    type: ParamType = ParamType.ANY
    required: bool = False
    default: Any = None
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ParamType(self.type))

    def to_json_schema(self) -> dict:
        schema = dict(_JSON_SCHEMA_TYPES[self.type])
        if self.description:
            schema["description"] = self.description
        return schema


@dataclass(frozen=True)
class CapabilityHints:
    """Behavioural hints for a capability."""

    read_only: bool = False
    idempotent: bool = False


@dataclass(frozen=True)
class CapabilityDefinition:
    """A single capability (tool) the model may choose.

    Attributes:
        name: Unique capability name (e.g. "read_file").
        description: When and why to use this capability.
        handler: Callable invoked by the executor with validated keyword arguments.
        parameters: Mapping of parameter name -> ParamSpec.
        risky: Whether execution requires approval in safe mode.
        hints: Read-only / idempotent hints.
        groups: Preset tags this capability belongs to.
    """

    name: str
    description: str
    handler: Callable[..., object]
    parameters: Mapping[str, ParamSpec] = field(default_factory=dict)
    risky: bool = False
    hints: CapabilityHints = field(default_factory=CapabilityHints)
    groups: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Capability name must be non-empty")
        object.__setattr__(
            self, "parameters", types.MappingProxyType(dict(self.parameters))
        )
        object.__setattr__(self, "groups", frozenset(self.groups))

    @property
    def required_parameters(self) -> list[str]:
        return [name for name, spec in self.parameters.items() if spec.required]

    def describe(self) -> str:
        """Render a plain-text description for prompts and cost calibration."""
        lines = [f"- {self.name}: {self.description}"]
        if self.risky:
            lines[0] += " (requires approval)"
        for pname, spec in self.parameters.items():
            flag = "required" if spec.required else "optional"
            text = f"    {pname} ({spec.type.value}, {flag})"
            if spec.description:
                text += f": {spec.description}"
            lines.append(text)
        return "\n".join(lines)

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format.

        Returns:
            Dict with "type": "function" and nested "function" object.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        pname: spec.to_json_schema()
                        for pname, spec in self.parameters.items()
                    },
                    "required": self.required_parameters,
                },
            },
        }


@dataclass(frozen=True)
class ExecutionOutcome:
    """Structured result from executing a capability.

    Attributes:
        success: Whether the handler returned without raising.
        value: Handler return value on success.
        error: Error message on failure.
    """

    success: bool
    value: Any = None
    error: str = ""

    def render(self) -> str:
        """Value (or error) as text for the next conversation turn."""
        if not self.success:
            return self.error
        if self.value is None:
            return ""
        if isinstance(self.value, str):
            return self.value
        if isinstance(self.value, (list, tuple)) and all(
            isinstance(v, str) for v in self.value
        ):
            return "\n".join(self.value)
        return repr(self.value)
