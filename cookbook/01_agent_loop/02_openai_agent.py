"""Agent Loop with a Real Model

Run the orchestrator against an OpenAI-compatible endpoint using the
read-only preset, so the agent can explore but never write or execute.

Demonstrates: OpenAIClient, ChatModelService, get_preset("read_only"),
              OrchestratorConfig(tools=), log_and_approve, BudgetTracker stats
"""

import os

from dotenv import load_dotenv

from agentloop import (
    BudgetTracker,
    CapabilityRegistry,
    ChatModelService,
    OpenAIClient,
    Orchestrator,
    OrchestratorConfig,
    get_builtin_capabilities,
    get_preset,
    log_and_approve,
)

load_dotenv()

API_KEY = os.environ["AGENTLOOP_OPENAI_API_KEY"]
BASE_URL = os.environ.get("AGENTLOOP_OPENAI_BASE_URL")
MODEL = os.environ.get("AGENTLOOP_MODEL", "gpt-4o-mini")


def main() -> None:
    registry = CapabilityRegistry(get_builtin_capabilities("."))
    tools = get_preset("read_only").names(registry)
    print(f"Tools enabled: {tools}\n")

    with OpenAIClient(api_key=API_KEY, base_url=BASE_URL) as client:
        model = ChatModelService(client, model=MODEL, temperature=0.2)
        config = OrchestratorConfig(
            max_iterations=6,
            tools=tools,
            approval_callback=log_and_approve,
            on_event=lambda e: print(f"  [event] {e.kind}: {dict(e.detail)}"),
        )
        orchestrator = Orchestrator(model, registry, config)
        result = orchestrator.run("Which Python modules in this directory define a main() function?")

    result.pprint()
    BudgetTracker().stats(result.state).pprint()


if __name__ == "__main__":
    main()
