"""
Session - mutable per-conversation state.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from agentrun.domain.errors import InvalidMessageSequence
from agentrun.domain.models import Message, MessageRole, ToolCall


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """
    Conversation session.

    Invariants maintained by ``append``:
    - at most one system message, and only at index 0
    - every tool message answers an outstanding tool call issued by an
      earlier assistant message
    """

    id: str
    messages: list[Message] = Field(default_factory=list)
    token_count: int = 0
    variables: dict[str, Any] = Field(default_factory=dict)
    # Agent that currently owns the conversation (changes on hand-off)
    agent_name: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def system_message(self) -> Message | None:
        if self.messages and self.messages[0].role == MessageRole.SYSTEM:
            return self.messages[0]
        return None

    def pending_tool_calls(self) -> list[ToolCall]:
        """Tool calls issued by assistant messages that have no result yet."""
        pending: dict[str, ToolCall] = {}
        for msg in self.messages:
            if msg.has_tool_calls():
                for call in msg.tool_calls or []:
                    pending[call.id] = call
            elif msg.role == MessageRole.TOOL and msg.tool_call_id:
                pending.pop(msg.tool_call_id, None)
        return list(pending.values())

    def append(self, message: Message) -> Message:
        if message.role == MessageRole.SYSTEM:
            raise InvalidMessageSequence(
                "System message can only be set with set_system_message()"
            )
        if message.role == MessageRole.TOOL:
            outstanding = {call.id for call in self.pending_tool_calls()}
            if message.tool_call_id not in outstanding:
                raise InvalidMessageSequence(
                    f"Tool result {message.tool_call_id!r} does not answer a pending tool call"
                )
        self.messages.append(message)
        self.updated_at = _now()
        return message

    def set_system_message(self, content: str) -> Message:
        """Insert the system message, or replace it whole if one exists."""
        message = Message.system(content)
        if self.system_message is not None:
            self.messages[0] = message
        else:
            self.messages.insert(0, message)
        self.updated_at = _now()
        return message

    def remove_system_message(self) -> Message | None:
        message = self.system_message
        if message is not None:
            del self.messages[0]
            self.updated_at = _now()
        return message

    def last_user_message(self) -> Message | None:
        for msg in reversed(self.messages):
            if msg.role == MessageRole.USER:
                return msg
        return None

    def clear(self) -> None:
        self.messages.clear()
        self.variables.clear()
        self.token_count = 0
        self.agent_name = None
        self.updated_at = _now()


__all__ = ["Session"]
