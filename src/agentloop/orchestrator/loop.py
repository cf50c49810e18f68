"""Core agent loop.

Provides the Orchestrator class that drives one task to completion:
check the budget (compacting when needed), ask the model for a decision,
parse it, validate it, gate risky actions behind approval, execute, and
feed the result back, until the model says it is done, the iteration
budget runs out, or an unrecoverable error occurs.

Recoverable problems (unknown action, invalid input, denial, a failing
handler) never end the run: they become the next message to the model.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Mapping

from agentloop.budget.tracker import BudgetTracker
from agentloop.compaction.compactor import Compactor
from agentloop.exceptions import (
    BudgetExceededError,
    CapabilityValidationError,
    CompactionError,
    DecisionParseError,
    OrchestratorError,
    UnknownCapabilityError,
)
from agentloop.models.conversation import ConversationState, Role
from agentloop.orchestrator.approval import ApprovalGate
from agentloop.orchestrator.config import (
    CompactionFailurePolicy,
    LoopState,
    OrchestratorConfig,
    RunStatus,
)
from agentloop.orchestrator.models import (
    ActionKind,
    ActionRecord,
    ApprovalOutcome,
    LoopEvent,
    RunResult,
)
from agentloop.orchestrator.parsing import DecisionParser
from agentloop.prompts.agent import build_agent_prompt, build_tool_reminder
from agentloop.toolkit.executor import ToolExecutor
from agentloop.toolkit.validation import validate_input

if TYPE_CHECKING:
    from agentloop.llm.protocols import ModelService
    from agentloop.orchestrator.models import Decision
    from agentloop.toolkit.models import CapabilityDefinition
    from agentloop.toolkit.registry import CapabilityRegistry

logger = logging.getLogger(__name__)

EXHAUSTED_RESPONSE = "Task incomplete (max iterations reached)"
CANCELLED_RESPONSE = "Task cancelled"
NO_ACTION_MESSAGE = (
    "ERROR: No action specified. Choose one of the available tools, "
    "or use STATUS: final when the task is complete."
)


class Orchestrator:
    """Runs the decide-approve-execute loop for one task at a time.

    Usage::

        registry = CapabilityRegistry(get_builtin_capabilities("."))
        orch = Orchestrator(model, registry, OrchestratorConfig(max_iterations=5))
        result = orch.run("List the Python files in this project")
        print(result.status, result.final_response)
    """

    def __init__(
        self,
        model: ModelService,
        registry: CapabilityRegistry,
        config: OrchestratorConfig | None = None,
        *,
        summarizer: ModelService | None = None,
        gate: ApprovalGate | None = None,
        executor: ToolExecutor | None = None,
        parser: DecisionParser | None = None,
    ) -> None:
        self._model = model
        self._registry = registry
        self._config = config or OrchestratorConfig()
        self._summarizer = summarizer or model
        self._gate = gate
        self._executor = executor or ToolExecutor()
        self._parser = parser or DecisionParser()
        self._state = LoopState.INIT
        self._stop_event = threading.Event()
        self._conversation: ConversationState | None = None
        self._actions: list[ActionRecord] = []
        self._events: list[LoopEvent] = []
        self._carry_over: str | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        """Current loop state."""
        return self._state

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def conversation(self) -> ConversationState | None:
        """Conversation of the current or most recent run."""
        return self._conversation

    def stop(self) -> None:
        """Ask the running loop to stop at the next state boundary."""
        self._stop_event.set()

    def run(
        self,
        task: str,
        *,
        initial_context: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> RunResult:
        """Run ``task`` until completion, exhaustion, failure, or cancellation.

        Args:
            task: What the agent should accomplish.
            initial_context: Optional context placed before the task.
            cancel_event: Checked between states; setting it cancels the run.

        Returns:
            RunResult with the terminal status, iteration count, full
            action history, events, and final conversation state.

        Raises:
            OrchestratorError: If iterations are unbounded and no
                ``cancel_event`` is given, or ``config.tools`` names an
                unregistered capability.
        """
        config = self._config
        if config.is_unbounded and cancel_event is None:
            raise OrchestratorError(
                "Unbounded max_iterations requires a cancel_event to stop the run"
            )

        capabilities = self._enabled_capabilities()
        enabled = {c.name: c for c in capabilities}
        known = {c.name: tuple(c.parameters) for c in capabilities}

        estimator = config.budget.build_estimator()
        tracker = BudgetTracker(estimator)
        overhead = tracker.tool_overhead(capabilities, calibrated=config.calibrated_overhead)
        self._conversation = ConversationState.from_config(
            config.budget, tool_overhead=overhead, estimator=estimator
        )
        self._actions = []
        self._events = []
        self._stop_event.clear()
        self._state = LoopState.INIT

        pending = self._initial_message(task, initial_context, capabilities)
        # Re-sent in the continuation turn after each compaction.
        self._carry_over = config.system_prompt or build_tool_reminder(capabilities)
        iteration = 0
        logger.info(
            "Starting run: %d capabilities, max_iterations=%s, safe_mode=%s",
            len(capabilities), config.max_iterations, config.safe_mode,
        )

        while True:
            if self._cancelled(cancel_event):
                return self._finish(task, RunStatus.CANCELLED, CANCELLED_RESPONSE, iteration)

            iteration += 1
            if not config.is_unbounded and iteration > config.max_iterations:
                return self._finish(task, RunStatus.EXHAUSTED, EXHAUSTED_RESPONSE, iteration - 1)

            # AWAIT_DECISION
            self._state = LoopState.AWAIT_DECISION
            try:
                self._conversation = self._prepare_budget(
                    tracker, self._conversation, pending, iteration
                )
            except (CompactionError, BudgetExceededError) as exc:
                return self._fail(task, exc, iteration)

            self._conversation.append(Role.USER, pending)
            try:
                response = self._model.send(self._conversation.turns)
            except Exception as exc:
                logger.debug("Model service failed", exc_info=True)
                return self._fail(task, exc, iteration)

            try:
                parsed = self._parser.parse_detailed(response, known)
            except DecisionParseError as exc:
                self._state = LoopState.PARSE_FATAL
                return self._fail(task, exc, iteration)
            self._state = LoopState.PARSE_OK
            self._conversation.append(Role.ASSISTANT, response)
            decision = parsed.decision

            # TERMINAL_CHECK
            self._state = LoopState.TERMINAL_CHECK
            if decision.is_final:
                return self._finish(
                    task, RunStatus.COMPLETED, decision.reasoning or response, iteration
                )

            pending = self._handle_decision(decision, enabled, iteration, cancel_event)
            if pending is None:
                return self._finish(task, RunStatus.CANCELLED, CANCELLED_RESPONSE, iteration)
            self._state = LoopState.APPEND

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _enabled_capabilities(self) -> list[CapabilityDefinition]:
        tools = self._config.tools
        if tools is None:
            return self._registry.all()
        try:
            return self._registry.subset(tools)
        except UnknownCapabilityError as exc:
            raise OrchestratorError(f"Invalid tools configuration: {exc}") from exc

    def _initial_message(
        self,
        task: str,
        initial_context: str | None,
        capabilities: list[CapabilityDefinition],
    ) -> str:
        prompt = self._config.system_prompt or build_agent_prompt(
            str(self._config.working_dir), self._config.max_iterations, capabilities
        )
        message = prompt
        if initial_context:
            message += f"\n\nCONTEXT:\n{initial_context}"
        return f"{message}\n\nTASK: {task}"

    def _cancelled(self, cancel_event: threading.Event | None) -> bool:
        return self._stop_event.is_set() or (
            cancel_event is not None and cancel_event.is_set()
        )

    def _prepare_budget(
        self,
        tracker: BudgetTracker,
        state: ConversationState,
        pending: str,
        iteration: int,
    ) -> ConversationState:
        """Compact or warn as needed before ``pending`` is sent.

        Raises:
            CompactionError: If compaction fails under the ABORT policy.
            BudgetExceededError: If the request would still exceed the ceiling.
        """
        projected = tracker.projected_cost(state, pending)
        compacted = False
        if state.auto_compact and tracker.needs_compaction(state, projected):
            before = state.cost_estimate
            try:
                new_state = Compactor(self._summarizer).compact(
                    state,
                    self._config.budget.preserve_recent_pairs,
                    carry_over=self._carry_over,
                )
            except CompactionError as exc:
                self._emit(LoopEvent("compaction_failed", iteration, {"error": str(exc)}))
                if self._config.compaction_failure is CompactionFailurePolicy.ABORT:
                    raise
                logger.warning("Compaction failed, continuing uncompacted: %s", exc)
            else:
                if new_state is not state:
                    state = new_state
                    compacted = True
                    projected = tracker.projected_cost(state, pending)
                    self._emit(LoopEvent("compaction", iteration, {
                        "cost_before": before,
                        "cost_after": state.cost_estimate,
                        "turns": len(state.turns),
                        "compaction_count": state.compaction_count,
                    }))

        if not compacted and tracker.needs_warning(state, projected):
            logger.warning(
                "Conversation cost %d is above the warning threshold (%d of %d)",
                projected, state.warning_threshold, state.cost_ceiling,
            )
            self._emit(LoopEvent("budget_warning", iteration, {
                "projected_cost": projected,
                "cost_ceiling": state.cost_ceiling,
            }))

        if projected > state.cost_ceiling:
            raise BudgetExceededError(projected, state.cost_ceiling)
        return state

    def _handle_decision(
        self,
        decision: Decision,
        enabled: Mapping[str, CapabilityDefinition],
        iteration: int,
        cancel_event: threading.Event | None,
    ) -> str | None:
        """Validate, approve, and execute a decision.

        Returns:
            The next message for the model, or None if the run was
            cancelled before execution.
        """
        action = decision.action
        if not action:
            self._record(iteration, "", decision.input, ActionKind.INVALID, NO_ACTION_MESSAGE)
            return NO_ACTION_MESSAGE

        definition = enabled.get(action)
        if definition is None:
            message = (
                f"ERROR: Unknown tool '{action}'. "
                f"Available tools: {', '.join(enabled) or '(none)'}"
            )
            self._record(iteration, action, decision.input, ActionKind.UNKNOWN, message)
            return message

        invalid = self._validation_message(definition, decision.input)
        if invalid is not None:
            self._record(iteration, action, decision.input, ActionKind.INVALID, invalid)
            return invalid

        action_input: Mapping[str, Any] = decision.input
        if definition.risky and self._config.safe_mode:
            self._state = LoopState.APPROVAL
            outcome = self._request_approval(decision, definition)
            if not outcome.approved:
                message = (
                    f"DENIED: User did not approve the '{action}' action.\n"
                    "Try a different approach or ask for clarification."
                )
                self._record(
                    iteration, action, outcome.input, ActionKind.DENIED,
                    outcome.reason or "Denied",
                )
                return message
            action_input = outcome.input
            if action_input != decision.input:
                invalid = self._validation_message(definition, action_input)
                if invalid is not None:
                    self._record(iteration, action, action_input, ActionKind.INVALID, invalid)
                    return invalid

        if self._cancelled(cancel_event):
            return None

        self._state = LoopState.EXECUTE
        result = self._executor.execute(definition, action_input)
        if result.success:
            text = result.render()
            self._record(iteration, action, action_input, ActionKind.EXECUTED, text)
            return f"RESULT ({action}):\n{text}"
        self._record(iteration, action, action_input, ActionKind.FAILED, result.error)
        return (
            f"ERROR ({action}):\n{result.error}\n\n"
            "Try a different approach or adjust parameters."
        )

    @staticmethod
    def _validation_message(
        definition: CapabilityDefinition, action_input: Mapping[str, Any]
    ) -> str | None:
        issues = validate_input(definition, action_input)
        if not issues:
            return None
        error = CapabilityValidationError(definition.name, issues)
        lines = "\n".join(f"- {issue.message}" for issue in error.issues)
        return f"ERROR ({definition.name}): invalid input\n{lines}"

    def _request_approval(
        self, decision: Decision, definition: CapabilityDefinition
    ) -> ApprovalOutcome:
        if self._gate is None:
            self._gate = ApprovalGate()
        try:
            return self._gate.request_approval(
                decision.action,
                decision.input,
                decision.reasoning,
                risky=definition.risky,
                safe_mode=self._config.safe_mode,
                callback=self._config.approval_callback,
                capability=definition,
            )
        except Exception as exc:
            logger.debug("Approval callback error: %s", exc, exc_info=True)
            return ApprovalOutcome(
                approved=False, input=decision.input, reason=f"Callback error: {exc}"
            )

    def _record(
        self,
        iteration: int,
        action: str,
        action_input: Mapping[str, Any],
        kind: ActionKind,
        result: str,
    ) -> None:
        record = ActionRecord(
            iteration=iteration,
            action=action,
            input=dict(action_input),
            kind=kind,
            result=result,
        )
        self._actions.append(record)
        logger.debug("Iteration %d: %s -> %s", iteration, action or "(none)", kind.value)
        if self._config.on_step is not None:
            try:
                self._config.on_step(record)
            except Exception:
                logger.debug("on_step callback error", exc_info=True)

    def _emit(self, event: LoopEvent) -> None:
        self._events.append(event)
        if self._config.on_event is not None:
            try:
                self._config.on_event(event)
            except Exception:
                logger.debug("on_event callback error", exc_info=True)

    def _fail(self, task: str, exc: BaseException, iteration: int) -> RunResult:
        logger.warning("Run failed at iteration %d: %s", iteration, exc)
        return self._finish(
            task, RunStatus.FAILED, f"Task failed: {exc}", iteration, error=exc
        )

    def _finish(
        self,
        task: str,
        status: RunStatus,
        final_response: str,
        iterations: int,
        error: BaseException | None = None,
    ) -> RunResult:
        self._state = LoopState(status.value)
        logger.info(
            "Run finished: status=%s iterations=%d actions=%d",
            status.value, iterations, len(self._actions),
        )
        return RunResult(
            task=task,
            status=status,
            final_response=final_response,
            iterations=iterations,
            actions=tuple(self._actions),
            error=error,
            events=tuple(self._events),
            state=self._conversation,
            loop_state=self._state,
        )
