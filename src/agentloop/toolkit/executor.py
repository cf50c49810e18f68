"""ToolExecutor: invokes capability handlers inside an isolation boundary.

Provides a single ``execute()`` method that calls the capability's handler
with its validated arguments and returns a structured ``ExecutionOutcome``.
A handler that raises produces a failed outcome instead of propagating, so
one crashing tool never aborts the orchestrator loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from agentloop.toolkit.models import ExecutionOutcome
from agentloop.toolkit.validation import apply_defaults

if TYPE_CHECKING:
    from agentloop.toolkit.models import CapabilityDefinition

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Runs capability handlers and classifies failures.

    Usage::

        executor = ToolExecutor()
        outcome = executor.execute(registry.get("list_files"), {"directory": "."})
        if outcome.success:
            print(outcome.value)
        else:
            print(outcome.error)
    """

    def execute(
        self,
        definition: CapabilityDefinition,
        input: Mapping[str, Any],
    ) -> ExecutionOutcome:
        """Execute a capability with already-validated input.

        Args:
            definition: The capability to run.
            input: Validated parameters. Undeclared keys are dropped and
                defaults for absent optional parameters are filled in.

        Returns:
            ExecutionOutcome with the handler's value or the error message.
        """
        arguments = apply_defaults(definition, input)
        try:
            value = definition.handler(**arguments)
        except Exception as exc:
            logger.debug(
                "Capability %s failed: %s", definition.name, exc, exc_info=True
            )
            return ExecutionOutcome(
                success=False,
                error=f"{type(exc).__name__}: {exc}",
            )
        logger.debug("Capability %s succeeded", definition.name)
        return ExecutionOutcome(success=True, value=value)
