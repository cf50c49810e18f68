"""Model-service and chat-client protocols.

``ModelService`` is the only interface the orchestrator and compactor
depend on: ordered turns in, response text out. ``LLMClient`` is the
lower-level chat-completions shape that :class:`ChatModelService` adapts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from agentloop.models.conversation import Turn


@runtime_checkable
class ModelService(Protocol):
    """Anything that answers a conversation with text.

    Used for tool decisions, compaction summaries, and the post-compaction
    acknowledgment. Implementations may raise; the orchestrator treats a
    raised error as fatal for the run.
    """

    def send(self, turns: Sequence[Turn]) -> str:
        ...


@runtime_checkable
class LLMClient(Protocol):
    """Protocol for pluggable chat-completion clients.

    The built-in OpenAIClient implements this protocol. Clients returning
    a non-OpenAI response shape should provide their own
    ``extract_content()``.
    """

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict:
        """Send messages, return the response dict."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...

    def extract_content(self, response: dict) -> str:
        """Assistant message text of a response (``choices[0].message.content``)."""
        ...
