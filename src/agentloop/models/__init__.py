"""Data models: conversation turns, conversation state, and budget config."""

from agentloop.models.config import BudgetConfig
from agentloop.models.conversation import ConversationState, Role, Turn, TurnKind

__all__ = [
    "BudgetConfig",
    "ConversationState",
    "Role",
    "Turn",
    "TurnKind",
]
