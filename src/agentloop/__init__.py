"""Agentloop: a tool-choosing agent loop with a conversation cost budget.

A model picks among registered capabilities, its free-form answer is
parsed into a decision, validated, gated behind approval when risky,
executed, and fed back, while the conversation is compacted before it
outgrows its budget.
"""

from agentloop._version import __version__

# Exceptions
from agentloop.exceptions import (
    AgentLoopError,
    ApprovalDeniedError,
    BudgetExceededError,
    CapabilityValidationError,
    CompactionError,
    DecisionParseError,
    NameConflictError,
    OrchestratorError,
    UnknownCapabilityError,
)

# Conversation and configuration
from agentloop.models import BudgetConfig, ConversationState, Role, Turn, TurnKind

# Budget
from agentloop.budget import (
    BudgetStats,
    BudgetTracker,
    CostEstimator,
    EstimationStrategy,
    TiktokenEstimator,
    estimate_cost,
)

# Toolkit
from agentloop.toolkit import (
    PRESETS,
    CapabilityDefinition,
    CapabilityHints,
    CapabilityRegistry,
    CapabilitySource,
    ExecutionOutcome,
    ParamSpec,
    ParamType,
    StaticCapabilitySource,
    ToolExecutor,
    ValidationIssue,
    check_input,
    get_builtin_capabilities,
    get_preset,
    validate_input,
)

# Compaction
from agentloop.compaction import Compactor, compact_conversation

# Model service
from agentloop.llm import (
    ChatModelService,
    LLMClient,
    ModelService,
    OpenAIClient,
    RetryPolicy,
)

# Orchestrator
from agentloop.orchestrator import (
    ActionKind,
    ActionRecord,
    ApprovalGate,
    ApprovalOutcome,
    CompactionFailurePolicy,
    Decision,
    DecisionParser,
    DecisionStatus,
    LoopEvent,
    LoopState,
    Orchestrator,
    OrchestratorConfig,
    RunResult,
    RunStatus,
    auto_approve,
    log_and_approve,
    parse_decision,
    reject_all,
)

__all__ = [
    "__version__",
    # Exceptions
    "AgentLoopError",
    "ApprovalDeniedError",
    "BudgetExceededError",
    "CapabilityValidationError",
    "CompactionError",
    "DecisionParseError",
    "NameConflictError",
    "OrchestratorError",
    "UnknownCapabilityError",
    # Conversation and configuration
    "BudgetConfig",
    "ConversationState",
    "Role",
    "Turn",
    "TurnKind",
    # Budget
    "BudgetStats",
    "BudgetTracker",
    "CostEstimator",
    "EstimationStrategy",
    "TiktokenEstimator",
    "estimate_cost",
    # Toolkit
    "PRESETS",
    "CapabilityDefinition",
    "CapabilityHints",
    "CapabilityRegistry",
    "CapabilitySource",
    "ExecutionOutcome",
    "ParamSpec",
    "ParamType",
    "StaticCapabilitySource",
    "ToolExecutor",
    "ValidationIssue",
    "check_input",
    "get_builtin_capabilities",
    "get_preset",
    "validate_input",
    # Compaction
    "Compactor",
    "compact_conversation",
    # Model service
    "ChatModelService",
    "LLMClient",
    "ModelService",
    "OpenAIClient",
    "RetryPolicy",
    # Orchestrator
    "ActionKind",
    "ActionRecord",
    "ApprovalGate",
    "ApprovalOutcome",
    "CompactionFailurePolicy",
    "Decision",
    "DecisionParser",
    "DecisionStatus",
    "LoopEvent",
    "LoopState",
    "Orchestrator",
    "OrchestratorConfig",
    "RunResult",
    "RunStatus",
    "auto_approve",
    "log_and_approve",
    "parse_decision",
    "reject_all",
]
