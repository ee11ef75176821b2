"""
Provider abstraction layer - one request/response contract for every backend.

Responsibilities:
- Encapsulate different LLM provider APIs
- Normalize responses into a discriminated union (text | tool_calls)
- Map vendor exceptions onto the agentrun error taxonomy

Does NOT handle:
- Tool loop logic
- Retries (the runner owns the retry policy)
- Session state
"""

from abc import ABC, abstractmethod
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from agentrun.domain import Message, ToolCall, Usage


class GenerationParams(BaseModel):
    """Per-call parameters derived from the AgentSpec."""

    model_config = ConfigDict(protected_namespaces=())

    model: str
    temperature: float = 0.7
    max_tokens: int | None = None
    tools: list[dict[str, Any]] | None = None
    # {"name": ..., "schema": ...} when the agent has an output type
    response_schema: dict[str, Any] | None = None


class TextResponse(BaseModel):
    kind: Literal["text"] = "text"
    content: str
    usage: Usage | None = None


class ToolCallsResponse(BaseModel):
    kind: Literal["tool_calls"] = "tool_calls"
    calls: list[ToolCall] = Field(min_length=1)
    # Some backends send text alongside tool calls
    content: str | None = None
    usage: Usage | None = None

    @model_validator(mode="after")
    def _unique_call_ids(self) -> "ToolCallsResponse":
        """Give repeated call ids a fresh one; results are matched by id."""
        seen: set[str] = set()
        calls: list[ToolCall] = []
        for call in self.calls:
            if call.id in seen:
                call = call.model_copy(update={"id": f"call_{uuid4().hex[:24]}"})
            seen.add(call.id)
            calls.append(call)
        self.calls = calls
        return self


ProviderResponse = Annotated[TextResponse | ToolCallsResponse, Field(discriminator="kind")]


class ModelProvider(BaseModel, ABC):
    """
    Unified provider base class.

    Implementations hold one long-lived client (and its connection pool)
    shared by every session; ``complete`` must be safe to call concurrently.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow")

    name: str = Field(description="Provider identifier, e.g. openai")

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        params: GenerationParams,
    ) -> TextResponse | ToolCallsResponse:
        """
        Run one completion.

        Args:
            messages: Context messages, oldest first
            params: Model, sampling parameters and tool schemas

        Returns:
            TextResponse or ToolCallsResponse

        Raises:
            RateLimited, AuthenticationFailed, ProviderTimeout, ProviderUnavailable
        """

    async def close(self) -> None:
        """Release the underlying client."""


__all__ = [
    "GenerationParams",
    "ModelProvider",
    "ProviderResponse",
    "TextResponse",
    "ToolCallsResponse",
]
