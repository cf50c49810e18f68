"""Shared test fixtures and helpers for agentloop.

Provides scripted model services, capability factories with call
recording, and decision-text builders. No test talks to a real model.
"""

from __future__ import annotations

import json

import pytest

from agentloop.models.conversation import ConversationState, Role
from agentloop.toolkit import (
    CapabilityDefinition,
    CapabilityRegistry,
    ParamSpec,
    ParamType,
)


# ---------------------------------------------------------------------------
# Model services
# ---------------------------------------------------------------------------


class ScriptedModel:
    """A ModelService that replies from a script and records every call.

    Once the script runs out the last reply is repeated. A reply that is
    an exception instance is raised instead of returned.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[list] = []

    def send(self, turns):
        self.calls.append(list(turns))
        idx = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[idx]
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def call_count(self) -> int:
        return len(self.calls)


class FailingModel:
    """A ModelService whose every call raises."""

    def __init__(self, exc: Exception | None = None):
        self.exc = exc or RuntimeError("model unavailable")
        self.call_count = 0

    def send(self, turns):
        self.call_count += 1
        raise self.exc


# ---------------------------------------------------------------------------
# Decision text builders
# ---------------------------------------------------------------------------


def tagged(action: str, input: dict | None = None, reasoning: str = "next step",
           status: str = "continue") -> str:
    """Tagged-block decision text."""
    return (
        "<TOOL_DECISION>\n"
        f"ACTION: {action}\n"
        f"INPUT: {json.dumps(input or {})}\n"
        f"REASONING: {reasoning}\n"
        f"STATUS: {status}\n"
        "</TOOL_DECISION>"
    )


def final(answer: str = "All done.") -> str:
    """Tagged-block final decision text."""
    return tagged("", {}, reasoning=answer, status="final")


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class RecordingHandler:
    """Callable handler that records its keyword arguments."""

    def __init__(self, result=None, exc: Exception | None = None):
        self.result = result
        self.exc = exc
        self.calls: list[dict] = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc is not None:
            raise self.exc
        return self.result

    @property
    def call_count(self) -> int:
        return len(self.calls)


def make_capability(
    name: str = "echo",
    parameters: dict | None = None,
    handler=None,
    risky: bool = False,
    groups=(),
    description: str = "",
) -> CapabilityDefinition:
    """Build a capability with a recording handler by default."""
    return CapabilityDefinition(
        name=name,
        description=description or f"The {name} capability.",
        handler=handler if handler is not None else RecordingHandler(result=f"{name} ok"),
        parameters=parameters or {},
        risky=risky,
        groups=frozenset(groups),
    )


def make_state(n_turns: int = 0, content: str = "x" * 30, **kwargs) -> ConversationState:
    """ConversationState with ``n_turns`` alternating user/assistant turns."""
    state = ConversationState(**kwargs)
    for i in range(n_turns):
        state.append(Role.USER if i % 2 == 0 else Role.ASSISTANT, f"{content} #{i}")
    return state


@pytest.fixture()
def list_files_handler():
    return RecordingHandler(result=["a.py", "b.py", "c.py"])


@pytest.fixture()
def write_file_handler():
    return RecordingHandler(result="File written successfully")


@pytest.fixture()
def count_handler():
    return RecordingHandler(result="counted")


@pytest.fixture()
def registry(list_files_handler, write_file_handler, count_handler):
    """Registry with a safe list_files, a risky write_file, and an integer-typed count_lines."""
    return CapabilityRegistry([
        make_capability(
            "list_files",
            {"directory": ParamSpec(ParamType.STRING, default=".")},
            handler=list_files_handler,
            groups=("read_only",),
        ),
        make_capability(
            "write_file",
            {
                "filepath": ParamSpec(ParamType.STRING, required=True),
                "content": ParamSpec(ParamType.STRING, required=True),
            },
            handler=write_file_handler,
            risky=True,
            groups=("code_generation",),
        ),
        make_capability(
            "count_lines",
            {"count": ParamSpec(ParamType.INTEGER, required=True)},
            handler=count_handler,
        ),
    ])
