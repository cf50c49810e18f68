"""Conversation compaction."""

from agentloop.compaction.compactor import Compactor, compact_conversation

__all__ = ["Compactor", "compact_conversation"]
