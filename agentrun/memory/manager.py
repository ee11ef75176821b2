"""
MemoryManager - builds the bounded context sent to the provider.
"""

from dataclasses import dataclass, field

from agentrun.domain import ContextOverflow, ErrorInfo, Message, MessageRole, Session
from agentrun.memory.base import (
    MessageGroup,
    PruningStrategy,
    Selection,
    group_messages,
    newest_window,
)
from agentrun.memory.strategies import SlidingWindowStrategy
from agentrun.memory.tokens import TokenEstimator
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ContextWindow:
    messages: list[Message]
    token_count: int
    budget: int
    overflow: bool = False
    dropped: int = 0
    warnings: list[ErrorInfo] = field(default_factory=list)


class MemoryManager:
    """
    Selects which session messages fit a token budget.

    Priority, highest first:
    1. the system message
    2. the latest user message (and the tool exchanges that follow it)
    3. pinned messages; non-pinned history goes first, then the oldest
       pinned groups, when they do not all fit
    4. whatever the pruning strategy picks from the remaining history

    The output is chronological, with a strategy summary (if any) placed
    right after the system message. ``build_context`` is pure: the same
    session snapshot and budget always give the same window.
    """

    def __init__(
        self,
        strategy: PruningStrategy | None = None,
        estimator: TokenEstimator | None = None,
    ):
        self.strategy = strategy or SlidingWindowStrategy()
        self.estimator = estimator or TokenEstimator()

    def build_context(self, session: Session, budget_tokens: int) -> ContextWindow:
        if budget_tokens <= 0:
            raise ValueError("budget_tokens must be positive")

        system = session.system_message
        system_tokens = self.estimator.count_message(system) if system else 0
        groups = group_messages(session.messages, self.estimator)
        total_messages = sum(len(g.messages) for g in groups) + (1 if system else 0)

        anchor_pos = self._anchor_position(groups)
        if anchor_pos is None:
            anchor: list[MessageGroup] = []
            older, tail = groups, []
        else:
            anchor = [groups[anchor_pos]]
            older, tail = groups[:anchor_pos], groups[anchor_pos + 1 :]

        fixed = system_tokens + sum(g.tokens for g in anchor)
        if fixed > budget_tokens:
            # Tool exchanges of the current turn stay so the model sees its own results
            required = fixed + sum(g.tokens for g in tail)
            warning = ContextOverflow(required_tokens=required, budget_tokens=budget_tokens)
            logger.warning(
                "context_overflow",
                session_id=session.id,
                required_tokens=required,
                budget_tokens=budget_tokens,
            )
            messages = ([system] if system else []) + [m for g in anchor + tail for m in g.messages]
            return ContextWindow(
                messages=messages,
                token_count=self.estimator.count_messages(messages),
                budget=budget_tokens,
                overflow=True,
                dropped=total_messages - len(messages),
                warnings=[warning.to_info()],
            )

        remaining = budget_tokens - fixed

        # Newest tool exchanges of the current turn come next
        kept_tail = newest_window(tail, remaining)
        remaining -= sum(g.tokens for g in kept_tail)

        pinned = [g for g in older if g.pinned]
        candidates = [g for g in older if not g.pinned]
        if sum(g.tokens for g in pinned) > remaining:
            # Non-pinned history is gone before any pinned group is dropped
            candidates = []
            while pinned and sum(g.tokens for g in pinned) > remaining:
                pinned.pop(0)
        remaining -= sum(g.tokens for g in pinned)

        query = anchor[0].text if anchor else ""
        if candidates:
            selection = self.strategy.select(candidates, remaining, self.estimator, query)
        else:
            selection = Selection()

        kept = sorted(selection.kept + pinned + anchor + kept_tail, key=lambda g: g.index)
        messages: list[Message] = []
        if system:
            messages.append(system)
        if selection.summary is not None:
            messages.append(selection.summary)
        messages.extend(m for g in kept for m in g.messages)

        token_count = self.estimator.count_messages(messages)
        kept_originals = len(messages) - (1 if selection.summary is not None else 0)
        window = ContextWindow(
            messages=messages,
            token_count=token_count,
            budget=budget_tokens,
            dropped=total_messages - kept_originals,
        )
        logger.debug(
            "context_built",
            session_id=session.id,
            messages=len(messages),
            dropped=window.dropped,
            tokens=token_count,
            budget=budget_tokens,
            summarized=selection.summary is not None,
        )
        return window

    @staticmethod
    def _anchor_position(groups: list[MessageGroup]) -> int | None:
        for pos in range(len(groups) - 1, -1, -1):
            if groups[pos].messages[0].role == MessageRole.USER:
                return pos
        return None


__all__ = ["ContextWindow", "MemoryManager"]
