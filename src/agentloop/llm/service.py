"""ChatModelService: adapts a chat-completion client to the ModelService protocol."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from agentloop.llm.protocols import LLMClient
    from agentloop.models.conversation import Turn

logger = logging.getLogger(__name__)


class ChatModelService:
    """Sends conversation turns to an LLMClient and returns the reply text.

    Usage::

        client = OpenAIClient()
        model = ChatModelService(client, model="gpt-4o-mini")
        orchestrator = Orchestrator(model, registry)
    """

    def __init__(
        self,
        client: LLMClient,
        *,
        system_prompt: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self._client = client
        self._system_prompt = system_prompt
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    def build_messages(self, turns: Sequence[Turn]) -> list[dict[str, str]]:
        messages = [t.to_message() for t in turns]
        if self._system_prompt:
            messages.insert(0, {"role": "system", "content": self._system_prompt})
        return messages

    def send(self, turns: Sequence[Turn]) -> str:
        """Send ``turns`` and return the assistant's text.

        Raises:
            LLMClientError: Propagated from the client.
        """
        messages = self.build_messages(turns)
        logger.debug("Sending %d messages to model %s", len(messages), self._model)
        response = self._client.chat(
            messages,
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        return self._client.extract_content(response)

    def close(self) -> None:
        self._client.close()
