"""Model-assisted conversation compaction.

Older turns are summarized by the model and replaced with a two-turn
preamble (the summary framed as a continuation, and the model's
acknowledgment). The most recent ``preserve_recent_pairs`` user/assistant
pairs are carried over as the same Turn objects.

Compaction never edits the state it is given. On any failure the caller
still holds the original, uncompacted state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from agentloop.exceptions import CompactionError
from agentloop.models.conversation import Role, TurnKind
from agentloop.prompts.compaction import (
    build_continuation_message,
    build_summary_request,
)

if TYPE_CHECKING:
    from agentloop.llm.protocols import ModelService
    from agentloop.models.conversation import ConversationState

logger = logging.getLogger(__name__)


class Compactor:
    """Summarizes older turns of a conversation with a model service.

    Args:
        summarizer: Model service used for the summary and the acknowledgment.
        prompt: Summary instruction; defaults to DEFAULT_COMPACTION_PROMPT.

    Usage::

        compactor = Compactor(model)
        state = compactor.compact(state, preserve_recent_pairs=2)
    """

    def __init__(self, summarizer: ModelService, prompt: str | None = None) -> None:
        self._summarizer = summarizer
        self._prompt = prompt

    def compact(
        self,
        state: ConversationState,
        preserve_recent_pairs: int = 2,
        *,
        carry_over: str | None = None,
    ) -> ConversationState:
        """Compact ``state``, keeping the last ``preserve_recent_pairs`` pairs.

        Args:
            state: Conversation to compact. Never modified.
            preserve_recent_pairs: User/assistant pairs kept verbatim.
            carry_over: Text appended after the summary in the continuation
                turn, for context that must outlive the summarized turns.

        Returns:
            ``state`` itself when there is nothing older than the preserved
            window, otherwise a new state with ``2 + 2 * preserve_recent_pairs``
            turns, the compaction count incremented and the compaction time set.

        Raises:
            CompactionError: If the summarizer fails or returns an empty
                summary, or the acknowledgment request fails.
        """
        if preserve_recent_pairs < 0:
            raise ValueError(
                f"preserve_recent_pairs must be non-negative, got {preserve_recent_pairs}"
            )
        turns = state.turns
        keep = 2 * preserve_recent_pairs
        if len(turns) <= keep:
            logger.debug("Nothing to compact: %d turns, keeping %d", len(turns), keep)
            return state

        split = len(turns) - keep
        older, recent = turns[:split], turns[split:]

        request = state.make_turn(Role.USER, build_summary_request(older, self._prompt))
        summary = self._ask(
            [request], "Compaction failed: summary request raised"
        )
        if not summary.strip():
            raise CompactionError("Compaction failed: summarizer returned an empty summary")

        continuation = state.make_turn(
            Role.USER,
            build_continuation_message(summary.strip(), carry_over),
            kind=TurnKind.COMPACTION_SUMMARY,
        )
        acknowledgment = self._ask(
            [continuation], "Compaction failed: acknowledgment request raised"
        )
        ack_turn = state.make_turn(
            Role.ASSISTANT, acknowledgment, kind=TurnKind.COMPACTION_ACK
        )

        compacted = state.with_turns(
            (continuation, ack_turn) + tuple(recent),
            compaction_count=state.compaction_count + 1,
            last_compaction_time=datetime.now(timezone.utc),
        )
        logger.info(
            "Compacted %d turns into summary; cost %d -> %d (compaction #%d)",
            len(older),
            state.cost_estimate,
            compacted.cost_estimate,
            compacted.compaction_count,
        )
        return compacted

    def _ask(self, turns, failure_message: str) -> str:
        try:
            reply = self._summarizer.send(turns)
        except Exception as exc:
            raise CompactionError(f"{failure_message}: {exc}") from exc
        if not isinstance(reply, str):
            raise CompactionError(
                f"{failure_message}: expected text, got {type(reply).__name__}"
            )
        return reply


def compact_conversation(
    state: ConversationState,
    preserve_recent_pairs: int,
    summarizer: ModelService,
    prompt: str | None = None,
    carry_over: str | None = None,
) -> ConversationState:
    """Compact ``state`` with a one-off :class:`Compactor`."""
    return Compactor(summarizer, prompt=prompt).compact(
        state, preserve_recent_pairs, carry_over=carry_over
    )
