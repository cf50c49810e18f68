"""Parameter validation for capability input.

Every declared parameter is checked and every violation is collected, so
a single rejection message can list everything wrong with a decision.
Parameters the schema does not declare are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping

from agentloop.exceptions import CapabilityValidationError, UnknownCapabilityError
from agentloop.toolkit.models import ParamType

if TYPE_CHECKING:
    from agentloop.toolkit.models import CapabilityDefinition
    from agentloop.toolkit.registry import CapabilityRegistry

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_text_collection(value: Any) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


TYPE_PREDICATES: dict[ParamType, Callable[[Any], bool]] = {
    ParamType.STRING: lambda v: isinstance(v, str),
    ParamType.TEXT_COLLECTION: _is_text_collection,
    ParamType.NUMBER: _is_number,
    ParamType.INTEGER: _is_integer,
    ParamType.BOOLEAN: lambda v: isinstance(v, bool),
    ParamType.LIST: lambda v: isinstance(v, (list, tuple)),
    ParamType.ANY: lambda v: True,
}


@dataclass(frozen=True)
class ValidationIssue:
    """A single schema violation.

    Attributes:
        parameter: Name of the offending parameter.
        kind: ``"missing"`` or ``"type"``.
        message: Human-readable explanation.
    """

    parameter: str
    kind: str
    message: str


def validate_input(
    definition: CapabilityDefinition,
    input: Mapping[str, Any],
) -> list[ValidationIssue]:
    """Check ``input`` against the capability's parameter schema.

    Args:
        definition: Capability whose schema applies.
        input: Proposed parameters.

    Returns:
        All violations found; an empty list means the input is valid.
    """
    issues: list[ValidationIssue] = []
    for name, spec in definition.parameters.items():
        value = input.get(name)
        if value is None:
            if spec.required:
                issues.append(ValidationIssue(
                    parameter=name,
                    kind="missing",
                    message=f"missing required parameter '{name}'",
                ))
            continue
        if not TYPE_PREDICATES[spec.type](value):
            issues.append(ValidationIssue(
                parameter=name,
                kind="type",
                message=(
                    f"parameter '{name}' must be {spec.type.value}, "
                    f"got {type(value).__name__}"
                ),
            ))
    return issues


def check_input(
    registry: CapabilityRegistry,
    action: str,
    input: Mapping[str, Any],
) -> CapabilityDefinition:
    """Resolve ``action`` and validate ``input``, raising on any problem.

    Raises:
        UnknownCapabilityError: If ``action`` is not registered. Validation
            is not attempted in that case.
        CapabilityValidationError: If the input has one or more issues.
    """
    definition = registry.lookup(action)
    if definition is None:
        raise UnknownCapabilityError(action)
    issues = validate_input(definition, input)
    if issues:
        raise CapabilityValidationError(action, issues)
    return definition


def apply_defaults(
    definition: CapabilityDefinition,
    input: Mapping[str, Any],
) -> dict[str, Any]:
    """Restrict input to declared parameters and fill optional defaults.

    Absent optional parameters whose default is None are left out so the
    handler's own keyword default applies.
    """
    arguments: dict[str, Any] = {}
    for name, spec in definition.parameters.items():
        value = input.get(name)
        if value is not None:
            arguments[name] = value
        elif spec.default is not None:
            arguments[name] = spec.default
    return arguments
