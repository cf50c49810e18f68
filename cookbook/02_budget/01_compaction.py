"""Conversation Budget and Compaction

Fill a small-budget conversation, watch the tracker's projection cross
the compaction threshold, then compact it with a stand-in summarizer.

Demonstrates: BudgetConfig, ConversationState.from_config(),
              BudgetTracker.projected_cost(), needs_compaction(),
              Compactor.compact(), BudgetStats.pprint()
"""

from agentloop import (
    BudgetConfig,
    BudgetTracker,
    Compactor,
    ConversationState,
    Role,
)


class CannedSummarizer:
    """Returns a fixed summary, then a fixed acknowledgment."""

    def __init__(self) -> None:
        self.calls = 0

    def send(self, turns) -> str:
        self.calls += 1
        if self.calls % 2 == 1:
            return "## Key decisions\n- Reviewed the log files\n## Next steps\n- Fix the parser"
        return "Understood. Ready to continue."


def main() -> None:
    config = BudgetConfig(cost_ceiling=5_000, preserve_recent_pairs=1)
    tracker = BudgetTracker(config.build_estimator())
    state = ConversationState.from_config(config, tool_overhead=500)

    print("=" * 60)
    print("PART 1 -- Filling the conversation")
    print("=" * 60)
    for i in range(6):
        state.append(Role.USER, f"Here is log chunk {i}: " + "error at line 12 " * 60)
        state.append(Role.ASSISTANT, f"Chunk {i} shows the parser failing on empty input.")
        print(f"  after pair {i}: cost={state.cost_estimate}, usage={state.usage_fraction:.0%}")

    pending = "What should we fix first?"
    projected = tracker.projected_cost(state, pending)
    print(f"\n  Projected with next message: {projected} "
          f"(threshold {state.compaction_threshold})")
    print(f"  Needs compaction: {tracker.needs_compaction(state, projected)}")
    tracker.stats(state).pprint()

    print("\n" + "=" * 60)
    print("PART 2 -- Compacting")
    print("=" * 60)
    compacted = Compactor(CannedSummarizer()).compact(state, config.preserve_recent_pairs)
    print(f"  Turns: {len(state)} -> {len(compacted)}")
    print(f"  Cost:  {state.cost_estimate} -> {compacted.cost_estimate}")
    print(f"  Recent pair kept verbatim: {compacted.turns[-2:] == state.turns[-2:]}")
    tracker.stats(compacted).pprint()


if __name__ == "__main__":
    main()
