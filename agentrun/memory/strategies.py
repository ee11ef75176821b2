"""
Pruning strategies.

- SlidingWindowStrategy: keep the newest messages that fit
- SummarizationStrategy: newest messages plus a summary of the rest
- SemanticStrategy: messages most relevant to the latest user message
- HybridStrategy: recent window + relevant older content + summary
"""

from agentrun.memory.base import MessageGroup, PruningStrategy, Selection, newest_window
from agentrun.memory.scoring import LexicalScorer, RelevanceScorer
from agentrun.memory.summarizer import ExtractiveSummarizer, Summarizer, summary_message
from agentrun.memory.tokens import TokenEstimator


def _used(groups: list[MessageGroup]) -> int:
    return sum(g.tokens for g in groups)


class SlidingWindowStrategy(PruningStrategy):
    """Keep the newest contiguous messages within budget (and ``max_messages``)."""

    def __init__(self, max_messages: int | None = None):
        if max_messages is not None and max_messages < 0:
            raise ValueError("max_messages must be >= 0")
        self.max_messages = max_messages

    def select(
        self,
        groups: list[MessageGroup],
        budget: int,
        estimator: TokenEstimator,
        query: str = "",
    ) -> Selection:
        return Selection(kept=newest_window(groups, budget, self.max_messages))


def _summarize_into(
    dropped: list[MessageGroup],
    kept: list[MessageGroup],
    budget: int,
    estimator: TokenEstimator,
    summarizer: Summarizer,
) -> Selection:
    """
    Attach a summary of ``dropped`` to ``kept``, giving up the oldest kept
    groups when the summary does not fit beside them.
    """
    kept = list(kept)
    dropped = list(dropped)
    while dropped:
        summary = summary_message(dropped, summarizer(dropped))
        size = estimator.count_message(summary)
        if _used(kept) + size <= budget:
            return Selection(kept=kept, summary=summary)
        if not kept:
            break
        dropped.append(kept.pop(0))
        dropped.sort(key=lambda g: g.index)
    # The summary alone does not fit; fall back to what fits without it
    return Selection(kept=newest_window(sorted(kept + dropped, key=lambda g: g.index), budget))


class SummarizationStrategy(PruningStrategy):
    """
    Recent window plus one synthetic assistant message summarizing the older
    groups. Nothing is summarized when everything fits.
    """

    def __init__(self, summarizer: Summarizer | None = None, keep_recent: int | None = None):
        self.summarizer = summarizer or ExtractiveSummarizer()
        self.keep_recent = keep_recent

    def select(
        self,
        groups: list[MessageGroup],
        budget: int,
        estimator: TokenEstimator,
        query: str = "",
    ) -> Selection:
        kept = newest_window(groups, budget, self.keep_recent)
        kept_ids = {g.index for g in kept}
        dropped = [g for g in groups if g.index not in kept_ids]
        if not dropped:
            return Selection(kept=kept)
        return _summarize_into(dropped, kept, budget, estimator, self.summarizer)


class SemanticStrategy(PruningStrategy):
    """
    Groups whose relevance to the latest user message reaches ``threshold``,
    best first; newer groups win ties.
    """

    def __init__(self, scorer: RelevanceScorer | None = None, threshold: float = 0.1):
        self.scorer = scorer or LexicalScorer()
        self.threshold = threshold

    def rank(self, groups: list[MessageGroup], query: str) -> list[tuple[float, MessageGroup]]:
        scored = [(self.scorer.score(query, g.text), g) for g in groups]
        relevant = [(s, g) for s, g in scored if s >= self.threshold]
        relevant.sort(key=lambda item: (-item[0], -item[1].index))
        return relevant

    def select(
        self,
        groups: list[MessageGroup],
        budget: int,
        estimator: TokenEstimator,
        query: str = "",
    ) -> Selection:
        kept: list[MessageGroup] = []
        used = 0
        if query:
            for _, group in self.rank(groups, query):
                if used + group.tokens <= budget:
                    kept.append(group)
                    used += group.tokens
        kept.sort(key=lambda g: g.index)
        return Selection(kept=kept)


class HybridStrategy(PruningStrategy):
    """
    Recent window within ``recent_ratio`` of the budget, then relevant older
    groups, then a summary of whatever is left if it fits.
    """

    def __init__(
        self,
        recent_ratio: float = 0.6,
        scorer: RelevanceScorer | None = None,
        threshold: float = 0.1,
        summarizer: Summarizer | None = None,
        summarize: bool = True,
    ):
        if not 0.0 <= recent_ratio <= 1.0:
            raise ValueError("recent_ratio must be between 0 and 1")
        self.recent_ratio = recent_ratio
        self.semantic = SemanticStrategy(scorer=scorer, threshold=threshold)
        self.summarizer = summarizer or ExtractiveSummarizer()
        self.summarize = summarize

    def select(
        self,
        groups: list[MessageGroup],
        budget: int,
        estimator: TokenEstimator,
        query: str = "",
    ) -> Selection:
        recent = newest_window(groups, int(budget * self.recent_ratio))
        recent_ids = {g.index for g in recent}
        older = [g for g in groups if g.index not in recent_ids]

        relevant = self.semantic.select(older, budget - _used(recent), estimator, query).kept
        kept = sorted(recent + relevant, key=lambda g: g.index)
        kept_ids = {g.index for g in kept}
        rest = [g for g in older if g.index not in kept_ids]

        if not rest or not self.summarize:
            return Selection(kept=kept)

        summary = summary_message(rest, self.summarizer(rest))
        if _used(kept) + estimator.count_message(summary) <= budget:
            return Selection(kept=kept, summary=summary)
        return Selection(kept=kept)


__all__ = [
    "HybridStrategy",
    "SemanticStrategy",
    "SlidingWindowStrategy",
    "SummarizationStrategy",
]
