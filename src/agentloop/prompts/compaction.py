"""Compaction prompts.

The summary request asks the model to condense the older part of a
conversation. The continuation message replays that summary as the first
turn of the compacted conversation and asks for an acknowledgment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from agentloop.models.conversation import Turn

DEFAULT_COMPACTION_PROMPT: str = (
    "Please create a concise summary of our conversation so far. "
    "Focus on preserving:\n\n"
    "1. **Key decisions** we made and the reasoning behind them\n"
    "2. **Unresolved issues** or questions that are still open\n"
    "3. **Important outputs** (code, data insights, recommendations)\n"
    "4. **Next steps** or action items we identified\n"
    "5. **Critical context** needed to continue productively\n\n"
    "You can omit:\n"
    "- Redundant or superseded information\n"
    "- Intermediate work that led to a final solution\n"
    "- Detailed tool outputs that are no longer relevant\n"
    "- Conversational pleasantries\n\n"
    "Structure your summary with clear headings and be as concise as possible "
    "while retaining all essential information."
)

CONTINUATION_TEMPLATE: str = (
    "This is a continuation of our previous conversation. Here is a summary "
    "of what we discussed:\n\n"
    "{summary}"
    "\n\n---\n\n"
    "We will continue our conversation from here. Please acknowledge that you "
    "understand the context and are ready to continue."
)

_ROLE_LABELS = {"user": "User", "assistant": "Assistant"}


def format_turns_for_summary(turns: Iterable[Turn]) -> str:
    """Render turns as ``### User`` / ``### Assistant`` sections separated by rules."""
    parts = [
        f"### {_ROLE_LABELS.get(t.role.value, t.role.value.title())}\n\n{t.content}"
        for t in turns
    ]
    return "\n\n---\n\n".join(parts)


def build_summary_request(turns: Iterable[Turn], prompt: str | None = None) -> str:
    """Build the summarization request for ``turns``.

    Args:
        turns: The older turns being compacted.
        prompt: Instruction text; defaults to DEFAULT_COMPACTION_PROMPT.
    """
    instruction = prompt if prompt is not None else DEFAULT_COMPACTION_PROMPT
    return (
        f"{instruction}\n\n# Conversation to Summarize\n\n"
        f"{format_turns_for_summary(turns)}"
    )


def build_continuation_message(summary: str, carry_over: str | None = None) -> str:
    """Continuation turn for ``summary``.

    ``carry_over`` is standing context placed after the summary, such as the
    tool list and response format the older turns carried.
    """
    if carry_over:
        summary = f"{summary}\n\n{carry_over}"
    return CONTINUATION_TEMPLATE.format(summary=summary)
