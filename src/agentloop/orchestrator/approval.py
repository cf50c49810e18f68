"""Approval gate for risky capabilities, plus ready-made callbacks.

Risky actions in safe mode go to a programmatic callback when one is
configured, otherwise to an interactive rich prompt offering approve,
deny, edit, and view. The prompt is a bounded loop: editing returns to
the same prompt for confirmation instead of recursing, and running out
of rounds, EOF, or Ctrl-C all deny.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping, Union

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.pretty import Pretty

from agentloop.exceptions import ApprovalDeniedError
from agentloop.orchestrator.models import ApprovalOutcome

if TYPE_CHECKING:
    from agentloop.toolkit.models import CapabilityDefinition

logger = logging.getLogger(__name__)

ApprovalCallback = Callable[
    [str, Mapping[str, Any], str],
    Union[ApprovalOutcome, Mapping[str, Any]],
]

DEFAULT_MAX_ROUNDS = 10

_APPROVE = {"", "y", "yes"}
_DENY = {"n", "no"}
_EDIT = {"e", "edit"}
_VIEW = {"v", "view"}


def normalize_outcome(
    result: ApprovalOutcome | Mapping[str, Any],
    original_input: Mapping[str, Any],
) -> ApprovalOutcome:
    """Coerce a callback's return value into an ApprovalOutcome.

    Dicts with ``approved`` and optional ``input``/``reason`` keys are
    accepted; a missing ``input`` keeps the original input.

    Raises:
        TypeError: If the value is neither an ApprovalOutcome nor a mapping.
    """
    if isinstance(result, ApprovalOutcome):
        return result
    if isinstance(result, Mapping):
        new_input = result.get("input")
        return ApprovalOutcome(
            approved=bool(result.get("approved", False)),
            input=original_input if new_input is None else new_input,
            reason=str(result.get("reason") or ""),
        )
    raise TypeError(
        f"Approval callback must return ApprovalOutcome or a mapping, "
        f"got {type(result).__name__}"
    )


class ApprovalGate:
    """Decides whether a proposed action may run.

    Args:
        console: Rich console used for the interactive prompt.
        input_fn: Reads one answer given a prompt string. Defaults to
            ``console.input``.
        max_rounds: Maximum prompts before the request is denied.

    Usage::

        gate = ApprovalGate()
        outcome = gate.request_approval(
            "write_file", {"filepath": "out.txt", "content": "hi"},
            "Save the report", risky=True, safe_mode=True,
        )
    """

    def __init__(
        self,
        console: Console | None = None,
        input_fn: Callable[[str], str] | None = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ) -> None:
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {max_rounds}")
        self._console = console or Console()
        self._input = input_fn or self._console.input
        self._max_rounds = max_rounds

    def request_approval(
        self,
        action: str,
        input: Mapping[str, Any],
        reasoning: str,
        *,
        risky: bool,
        safe_mode: bool,
        callback: ApprovalCallback | None = None,
        capability: CapabilityDefinition | None = None,
    ) -> ApprovalOutcome:
        """Approve, deny, or edit a proposed action.

        Args:
            action: Capability name.
            input: Proposed parameters.
            reasoning: The model's explanation, shown to the reviewer.
            risky: Whether the capability is risk-classified.
            safe_mode: Whether risky capabilities need approval.
            callback: Programmatic reviewer; its result is returned as is
                (mappings are converted to ApprovalOutcome).
            capability: Definition shown by the "view" answer.

        Returns:
            ApprovalOutcome with the input to execute with.
        """
        if not risky or not safe_mode:
            return ApprovalOutcome(approved=True, input=input)
        if callback is not None:
            outcome = normalize_outcome(callback(action, input, reasoning), input)
            logger.debug("Approval callback for %s: approved=%s", action, outcome.approved)
            return outcome
        return self._prompt(action, input, reasoning, capability)

    # ------------------------------------------------------------------
    # Interactive flow
    # ------------------------------------------------------------------

    def _prompt(
        self,
        action: str,
        input: Mapping[str, Any],
        reasoning: str,
        capability: CapabilityDefinition | None,
    ) -> ApprovalOutcome:
        current = dict(input)
        self._show_request(action, current, reasoning)
        try:
            for _ in range(self._max_rounds):
                choice = self._input(
                    "Approve? (y)es / (n)o / (e)dit / (v)iew, Enter = yes: "
                ).strip().lower()
                if choice in _APPROVE:
                    return ApprovalOutcome(approved=True, input=current)
                if choice in _DENY:
                    return ApprovalOutcome(
                        approved=False, input=current, reason="Denied by user"
                    )
                if choice in _EDIT:
                    current = self._edit(current)
                    self._console.print(Panel(Pretty(current), title="Edited input"))
                    continue
                if choice in _VIEW:
                    self._show_capability(action, current, capability)
                    continue
                self._console.print("Invalid choice. Enter 'y', 'n', 'e', or 'v'.")
        except (EOFError, KeyboardInterrupt):
            return ApprovalOutcome(approved=False, input=current, reason="Input closed")
        logger.warning("Approval for %s denied after %d prompts", action, self._max_rounds)
        return ApprovalOutcome(
            approved=False, input=current, reason="No decision after maximum prompts"
        )

    def _edit(self, current: dict[str, Any]) -> dict[str, Any]:
        for _ in range(self._max_rounds):
            raw = self._input("New input as a JSON object (Enter to keep current): ").strip()
            if not raw:
                return current
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                self._console.print("Invalid JSON. Please try again.")
                continue
            if not isinstance(parsed, dict):
                self._console.print("Input must be a JSON object. Please try again.")
                continue
            return parsed
        return current

    def _show_request(self, action: str, current: Mapping[str, Any], reasoning: str) -> None:
        content = (
            f"[bold]Action:[/bold] {escape(action)}\n"
            f"[bold]Reasoning:[/bold] {escape(reasoning)}\n"
            f"[bold]Input:[/bold] {escape(json.dumps(current, indent=2, default=str))}"
        )
        self._console.print(Panel(content, title="Approval required", border_style="yellow"))

    def _show_capability(
        self,
        action: str,
        current: Mapping[str, Any],
        capability: CapabilityDefinition | None,
    ) -> None:
        if capability is None:
            body = f"[bold]{escape(action)}[/bold]\n(no capability metadata available)"
        else:
            body = escape(capability.describe())
        body += f"\n\nCurrent input:\n{escape(json.dumps(current, indent=2, default=str))}"
        self._console.print(Panel(body, title=f"Capability: {escape(action)}"))


# ---------------------------------------------------------------------------
# Ready-made callbacks
# ---------------------------------------------------------------------------

def auto_approve(action: str, input: Mapping[str, Any], reasoning: str) -> ApprovalOutcome:
    """Approve every request unchanged."""
    return ApprovalOutcome(approved=True, input=input)


def log_and_approve(action: str, input: Mapping[str, Any], reasoning: str) -> ApprovalOutcome:
    """Log the request then approve it, for an audit trail."""
    logger.info("Approving %s with input=%s, reasoning=%s", action, dict(input), reasoning)
    return ApprovalOutcome(approved=True, input=input)


def reject_all(action: str, input: Mapping[str, Any], reasoning: str) -> ApprovalOutcome:
    """Deny every request."""
    return ApprovalOutcome(approved=False, input=input, reason="Auto-rejected")


def require_approval(outcome: ApprovalOutcome, action: str) -> ApprovalOutcome:
    """Return ``outcome`` if approved.

    Raises:
        ApprovalDeniedError: If the outcome is a denial.
    """
    if not outcome.approved:
        raise ApprovalDeniedError(action, outcome.reason)
    return outcome
