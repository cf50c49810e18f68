"""Agent prompt: role, tool list, and the required response format.

The response format section documents the tagged decision block that the
first parser extractor reads. The parser accepts other formats too, but
asking for one keeps model output predictable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from agentloop.toolkit.models import CapabilityDefinition

RESPONSE_FORMAT: str = (
    "Respond with exactly one decision block in this format:\n\n"
    "<TOOL_DECISION>\n"
    "ACTION: <tool name, or empty when the task is complete>\n"
    'INPUT: {"param": "value"}\n'
    "REASONING: <why this step>\n"
    "STATUS: continue\n"
    "</TOOL_DECISION>\n\n"
    "INPUT must be a JSON object. Use STATUS: continue while more work is needed.\n"
    "When the task is complete, use STATUS: final and put your answer in REASONING, "
    "or clearly state 'TASK COMPLETE' followed by a summary of what was accomplished."
)


def build_tool_reminder(capabilities: Iterable[CapabilityDefinition]) -> str:
    """Tool list and response format, without the role preamble."""
    tool_lines = [c.describe() for c in capabilities]
    tools = "\n".join(tool_lines) if tool_lines else "(no tools available)"
    return f"Available tools:\n{tools}\n\n{RESPONSE_FORMAT}"


def build_agent_prompt(
    working_dir: str,
    max_iterations: int | float | None,
    capabilities: Iterable[CapabilityDefinition],
) -> str:
    """Build the system prompt sent at the start of a run.

    Args:
        working_dir: Directory the agent works in.
        max_iterations: Iteration budget; None or infinity is shown as
            unlimited.
        capabilities: Enabled capabilities, listed with their parameters.

    Returns:
        Prompt text.
    """
    if max_iterations is None or max_iterations == float("inf"):
        budget = "You have unlimited iterations to complete the task"
    else:
        budget = f"You have {int(max_iterations)} iterations to complete the task"

    return (
        f"You are an expert programming assistant working in: {working_dir}\n\n"
        "Your role is to complete the task step by step. At each step choose one "
        "tool to call, or declare the task complete.\n\n"
        "Guidelines:\n"
        "- Break down complex tasks into clear, logical steps\n"
        "- Explain your reasoning thoroughly\n"
        "- Consider edge cases and potential errors\n"
        "- Be precise about file paths and parameters\n"
        f"- {budget}\n\n"
        f"{build_tool_reminder(capabilities)}"
    )
