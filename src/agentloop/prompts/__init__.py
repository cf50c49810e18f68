"""Prompt templates for the agent loop and compaction."""

from agentloop.prompts.agent import (
    RESPONSE_FORMAT,
    build_agent_prompt,
    build_tool_reminder,
)
from agentloop.prompts.compaction import (
    CONTINUATION_TEMPLATE,
    DEFAULT_COMPACTION_PROMPT,
    build_continuation_message,
    build_summary_request,
    format_turns_for_summary,
)

__all__ = [
    "CONTINUATION_TEMPLATE",
    "DEFAULT_COMPACTION_PROMPT",
    "RESPONSE_FORMAT",
    "build_agent_prompt",
    "build_continuation_message",
    "build_summary_request",
    "build_tool_reminder",
    "format_turns_for_summary",
]
