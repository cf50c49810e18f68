"""Orchestrator: the decide-approve-execute agent loop.

Provides the Orchestrator class, its configuration, the decision parser,
the approval gate with ready-made callbacks, and result models.
"""

from agentloop.orchestrator.approval import (
    ApprovalCallback,
    ApprovalGate,
    auto_approve,
    log_and_approve,
    normalize_outcome,
    reject_all,
    require_approval,
)
from agentloop.orchestrator.config import (
    CompactionFailurePolicy,
    LoopState,
    OrchestratorConfig,
    RunStatus,
)
from agentloop.orchestrator.loop import Orchestrator
from agentloop.orchestrator.models import (
    ActionKind,
    ActionRecord,
    ApprovalOutcome,
    Decision,
    DecisionStatus,
    LoopEvent,
    ParseResult,
    RunResult,
)
from agentloop.orchestrator.parsing import (
    DEFAULT_EXTRACTORS,
    DecisionParser,
    extract_completion_marker,
    extract_loose_block,
    extract_structured_payload,
    extract_tagged_block,
    infer_decision,
    parse_decision,
)

__all__ = [
    "ActionKind",
    "ActionRecord",
    "ApprovalCallback",
    "ApprovalGate",
    "ApprovalOutcome",
    "CompactionFailurePolicy",
    "DEFAULT_EXTRACTORS",
    "Decision",
    "DecisionParser",
    "DecisionStatus",
    "LoopEvent",
    "LoopState",
    "Orchestrator",
    "OrchestratorConfig",
    "ParseResult",
    "RunResult",
    "RunStatus",
    "auto_approve",
    "extract_completion_marker",
    "extract_loose_block",
    "extract_structured_payload",
    "extract_tagged_block",
    "infer_decision",
    "log_and_approve",
    "normalize_outcome",
    "parse_decision",
    "reject_all",
    "require_approval",
]
