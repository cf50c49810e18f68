"""Scripted Agent Run

Drive the orchestrator with a scripted model so every step is visible
without an API key: a safe tool call, a denied risky call, an invalid
input, and the final answer.

Demonstrates: CapabilityRegistry, get_builtin_capabilities, get_preset,
              OrchestratorConfig(approval_callback=), Orchestrator.run(),
              RunResult.pprint(), on_step callbacks
"""

import json
import tempfile
from pathlib import Path

from agentloop import (
    CapabilityRegistry,
    Orchestrator,
    OrchestratorConfig,
    get_builtin_capabilities,
    reject_all,
)


def decision(action: str, input: dict, reasoning: str, status: str = "continue") -> str:
    return (
        "<TOOL_DECISION>\n"
        f"ACTION: {action}\n"
        f"INPUT: {json.dumps(input)}\n"
        f"REASONING: {reasoning}\n"
        f"STATUS: {status}\n"
        "</TOOL_DECISION>"
    )


class ScriptedModel:
    """Replies from a fixed script, one reply per send()."""

    def __init__(self, replies: list[str]) -> None:
        self._replies = iter(replies)

    def send(self, turns) -> str:
        print(f"  [model] received {len(turns)} turns, last: {turns[-1].content[:60]!r}")
        return next(self._replies)


def main() -> None:
    with tempfile.TemporaryDirectory() as workdir:
        Path(workdir, "app.py").write_text("def main():\n    return 42\n")
        Path(workdir, "notes.md").write_text("# Notes\n")

        registry = CapabilityRegistry(get_builtin_capabilities(workdir))
        print(f"Registered: {registry.names()}\n")

        model = ScriptedModel([
            decision("list_files", {"directory": "."}, "See what is in the project"),
            decision("write_file", {"filepath": "out.txt", "content": "hi"}, "Save a report"),
            decision("read_file", {"path": "app.py"}, "Wrong parameter name"),
            decision("read_file", {"filepath": "app.py"}, "Read the entry point"),
            decision("", {}, "app.py defines main() returning 42.", status="final"),
        ])

        config = OrchestratorConfig(
            max_iterations=8,
            working_dir=workdir,
            approval_callback=reject_all,
            on_step=lambda r: print(f"  [step {r.iteration}] {r.action} -> {r.kind.value}"),
        )
        result = Orchestrator(model, registry, config).run("Summarize the project")

        print(f"\nStatus: {result.status.value} after {result.iterations} iterations")
        result.pprint()


if __name__ == "__main__":
    main()
