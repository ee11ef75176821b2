"""
Pruning primitives.

Strategies never split a tool call from its results: an assistant message
carrying tool calls and the tool messages answering it form one
MessageGroup, kept or dropped together.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from agentrun.domain import Message, MessageRole
from agentrun.memory.tokens import TokenEstimator


@dataclass(frozen=True)
class MessageGroup:
    """Messages that are kept or dropped as a unit."""

    index: int
    messages: tuple[Message, ...]
    tokens: int

    @property
    def pinned(self) -> bool:
        return any(m.pinned for m in self.messages)

    @property
    def text(self) -> str:
        return "\n".join(m.text for m in self.messages if m.text)


def group_messages(messages: list[Message], estimator: TokenEstimator) -> list[MessageGroup]:
    """
    Split non-system messages into pruning units.

    Tool messages attach to the group of the assistant message that issued
    the call; every other message starts its own group.
    """
    groups: list[list[Message]] = []
    open_calls: set[str] = set()
    for msg in messages:
        if msg.role == MessageRole.SYSTEM:
            continue
        if msg.role == MessageRole.TOOL and groups and msg.tool_call_id in open_calls:
            groups[-1].append(msg)
            open_calls.discard(msg.tool_call_id)
            continue
        groups.append([msg])
        open_calls = {c.id for c in msg.tool_calls or []}

    return [
        MessageGroup(index=i, messages=tuple(g), tokens=estimator.count_messages(g))
        for i, g in enumerate(groups)
    ]


@dataclass
class Selection:
    """What a strategy decided to keep."""

    kept: list[MessageGroup] = field(default_factory=list)
    summary: Message | None = None


class PruningStrategy(ABC):
    """Chooses which groups fit in a token budget."""

    @abstractmethod
    def select(
        self,
        groups: list[MessageGroup],
        budget: int,
        estimator: TokenEstimator,
        query: str = "",
    ) -> Selection:
        """
        Args:
            groups: Candidate groups, oldest first (pinned and mandatory
                content already removed)
            budget: Tokens available for the selection, summary included
            estimator: Token estimator used to size synthetic messages
            query: Text of the latest user message

        Returns:
            Selection whose total size is within ``budget``
        """


def newest_window(
    groups: list[MessageGroup],
    budget: int,
    max_messages: int | None = None,
) -> list[MessageGroup]:
    """Newest contiguous run of groups that fits ``budget`` (and ``max_messages``)."""
    kept: list[MessageGroup] = []
    used = 0
    count = 0
    for group in reversed(groups):
        count += len(group.messages)
        if max_messages is not None and count > max_messages:
            break
        if used + group.tokens > budget:
            break
        kept.append(group)
        used += group.tokens
    kept.reverse()
    return kept


__all__ = ["MessageGroup", "PruningStrategy", "Selection", "group_messages", "newest_window"]
