"""
Core domain models for agentrun.

This module contains the value types that flow through the runner:
- Message / ToolCall: conversation content (OpenAI message shape)
- Usage / ErrorInfo: accounting and structured error descriptors
- ToolResult: outcome of a single tool invocation
- RunResult: outcome of one Runner.run call
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class MessageRole(str, Enum):
    """Standard LLM message roles"""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


# ============================================================================
# Messages
# ============================================================================


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"call_{uuid4().hex[:24]}")
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    # Set when the provider sent arguments that are not a JSON object
    parse_error: str | None = None

    @classmethod
    def from_openai(cls, tool_call: dict[str, Any]) -> "ToolCall":
        fn = tool_call.get("function") or {}
        raw = fn.get("arguments") or "{}"
        parse_error = None
        if isinstance(raw, str):
            try:
                arguments = json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError as e:
                arguments, parse_error = {}, f"Invalid JSON arguments: {e}"
        else:
            arguments = raw
        if not isinstance(arguments, dict):
            arguments, parse_error = {}, "Tool arguments must be a JSON object"
        kwargs: dict[str, Any] = {"name": fn.get("name") or "", "arguments": arguments}
        if tool_call.get("id"):
            kwargs["id"] = tool_call["id"]
        return cls(parse_error=parse_error, **kwargs)

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments)},
        }


MessageContent = str | list[dict[str, Any]] | dict[str, Any] | None


class Message(BaseModel):
    """
    One conversation entry.

    Messages are immutable: a session only ever appends them, and pruning
    removes or replaces whole messages.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    role: MessageRole
    content: MessageContent = None

    # Assistant-specific fields
    tool_calls: list[ToolCall] | None = None

    # Tool-specific fields
    tool_call_id: str | None = None
    name: str | None = None

    # Retained by the memory manager regardless of recency while budget allows
    pinned: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)

    # --- Factories ---

    @classmethod
    def system(cls, content: str, **kwargs: Any) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content, **kwargs)

    @classmethod
    def user(cls, content: MessageContent, **kwargs: Any) -> "Message":
        return cls(role=MessageRole.USER, content=content, **kwargs)

    @classmethod
    def assistant(
        cls,
        content: MessageContent = None,
        tool_calls: list[ToolCall] | None = None,
        **kwargs: Any,
    ) -> "Message":
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            tool_calls=tool_calls or None,
            **kwargs,
        )

    @classmethod
    def tool(cls, tool_call_id: str, name: str, content: MessageContent, **kwargs: Any) -> "Message":
        return cls(
            role=MessageRole.TOOL,
            tool_call_id=tool_call_id,
            name=name,
            content=content,
            **kwargs,
        )

    # --- Helpers ---

    @property
    def text(self) -> str:
        """Content flattened to plain text."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list) and all(
            isinstance(block, dict) and block.get("type") == "text" for block in self.content
        ):
            return "\n".join(str(block.get("text", "")) for block in self.content)
        return json.dumps(self.content, sort_keys=True, default=str)

    @property
    def is_summary(self) -> bool:
        return bool(self.metadata.get("summary"))

    def has_tool_calls(self) -> bool:
        return self.role == MessageRole.ASSISTANT and bool(self.tool_calls)

    def to_openai(self) -> dict[str, Any]:
        """Chat-completions wire format."""
        msg: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if isinstance(self.content, dict):
            msg["content"] = self.text
        if self.tool_calls:
            msg["tool_calls"] = [tc.to_openai() for tc in self.tool_calls]
        if self.role == MessageRole.TOOL:
            msg["tool_call_id"] = self.tool_call_id
            if self.name:
                msg["name"] = self.name
            if not isinstance(self.content, str):
                msg["content"] = self.text
        return msg


# ============================================================================
# Accounting
# ============================================================================


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def merge(self, other: "Usage | None") -> None:
        if other is None:
            return
        self.prompt_tokens += other.prompt_tokens
        self.completion_tokens += other.completion_tokens
        self.total_tokens += other.total_tokens


class ErrorInfo(BaseModel):
    """Structured error descriptor carried by results."""

    kind: str
    message: str
    retryable: bool = False
    details: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Results
# ============================================================================


class ToolResult(BaseModel):
    tool_name: str
    tool_call_id: str | None = None
    status: Literal["success", "error"]
    payload: Any = None
    error_kind: str | None = None
    duration: float = 0.0

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @property
    def content(self) -> str:
        """Payload rendered for the model."""
        if isinstance(self.payload, str):
            return self.payload
        if self.payload is None:
            return ""
        return json.dumps(self.payload, default=str)

    @classmethod
    def success(cls, tool_name: str, payload: Any, **kwargs: Any) -> "ToolResult":
        return cls(tool_name=tool_name, status="success", payload=payload, **kwargs)

    @classmethod
    def failure(cls, tool_name: str, kind: str, detail: str, **kwargs: Any) -> "ToolResult":
        return cls(
            tool_name=tool_name,
            status="error",
            payload=f"{kind}: {detail}",
            error_kind=kind,
            **kwargs,
        )


class RunResult(BaseModel):
    """Outcome of one Runner.run call."""

    run_id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    messages: list[Message] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
    success: bool = False
    last_agent: str | None = None
    turns: int = 0
    error: ErrorInfo | None = None
    warnings: list[ErrorInfo] = Field(default_factory=list)
    duration: float = 0.0
    # Validated final answer when the agent declares an output type
    structured_output: dict[str, Any] | None = None

    @property
    def final_output(self) -> str | None:
        for msg in reversed(self.messages):
            if msg.role == MessageRole.ASSISTANT and not msg.tool_calls and msg.content:
                return msg.text
        return None


__all__ = [
    "MessageRole",
    "ToolCall",
    "Message",
    "MessageContent",
    "Usage",
    "ErrorInfo",
    "ToolResult",
    "RunResult",
]
