"""
Summaries of pruned history.
"""

import hashlib
from typing import Protocol

from agentrun.domain import Message, MessageRole
from agentrun.memory.base import MessageGroup


class Summarizer(Protocol):
    def __call__(self, groups: list[MessageGroup]) -> str: ...


class ExtractiveSummarizer:
    """
    Deterministic summary: one clipped line per message, bounded overall.

    No model call is made, so context building stays synchronous.
    """

    def __init__(self, max_chars_per_message: int = 160, max_chars: int = 1200):
        self.max_chars_per_message = max_chars_per_message
        self.max_chars = max_chars

    def _clip(self, text: str, limit: int) -> str:
        text = " ".join(text.split())
        if len(text) <= limit:
            return text
        return text[: max(limit - 3, 0)] + "..."

    def __call__(self, groups: list[MessageGroup]) -> str:
        lines = []
        count = 0
        for group in groups:
            for msg in group.messages:
                count += 1
                if msg.role == MessageRole.TOOL:
                    lines.append(f"- tool {msg.name}: {self._clip(msg.text, self.max_chars_per_message)}")
                elif msg.tool_calls:
                    names = ", ".join(c.name for c in msg.tool_calls)
                    lines.append(f"- assistant called {names}")
                elif msg.text:
                    lines.append(f"- {msg.role.value}: {self._clip(msg.text, self.max_chars_per_message)}")
        text = "\n".join([f"Summary of {count} earlier messages:", *lines])
        if len(text) > self.max_chars:
            text = text[: self.max_chars - 3] + "..."
        return text


def summary_message(groups: list[MessageGroup], text: str) -> Message:
    """
    Synthetic assistant message standing in for ``groups``.

    Its id and timestamp derive from the summarized messages, so rebuilding
    the same context yields an identical message.
    """
    digest = hashlib.sha1(
        "|".join(m.id for g in groups for m in g.messages).encode()
    ).hexdigest()[:16]
    last = groups[-1].messages[-1]
    return Message.assistant(
        text,
        id=f"summary-{digest}",
        created_at=last.created_at,
        metadata={
            "summary": True,
            "summarized_messages": sum(len(g.messages) for g in groups),
        },
    )


__all__ = ["ExtractiveSummarizer", "Summarizer", "summary_message"]
