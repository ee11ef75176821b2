"""
Anthropic provider - messages API.
"""

import os
from typing import Any

from anthropic import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncAnthropic,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
)
from pydantic import ConfigDict, Field, SecretStr

from agentrun.domain import (
    AuthenticationFailed,
    Message,
    MessageRole,
    ProviderError,
    ProviderTimeout,
    ProviderUnavailable,
    RateLimited,
    ToolCall,
    Usage,
)
from agentrun.providers.llm.base import (
    GenerationParams,
    ModelProvider,
    TextResponse,
    ToolCallsResponse,
)
from agentrun.providers.llm.openai import parse_retry_after
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


def map_anthropic_error(e: Exception) -> Exception:
    """Translate an anthropic SDK exception into the agentrun taxonomy."""
    if isinstance(e, APITimeoutError):
        return ProviderTimeout(str(e))
    if isinstance(e, APIConnectionError):
        return ProviderUnavailable(str(e))
    if isinstance(e, RateLimitError):
        return RateLimited(str(e), retry_after=parse_retry_after(e.response.headers))
    if isinstance(e, (AuthenticationError, PermissionDeniedError)):
        return AuthenticationFailed(str(e))
    if isinstance(e, InternalServerError):
        return ProviderUnavailable(str(e), status_code=e.status_code)
    if isinstance(e, APIStatusError):
        # 529 overloaded arrives as a plain status error
        if e.status_code >= 500:
            return ProviderUnavailable(str(e), status_code=e.status_code)
        return ProviderError(str(e), status_code=e.status_code)
    return e


class AnthropicProvider(ModelProvider):
    """
    Anthropic Claude provider.

    The system prompt is lifted out of the message list and tool results are
    sent back as ``tool_result`` blocks in a user turn.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    name: str = "anthropic"
    api_key: SecretStr | None = Field(default=None, exclude=True)
    base_url: str | None = Field(default=None, description="Custom API base URL")
    timeout: float | None = Field(default=None, description="Client-level request timeout")
    client: AsyncAnthropic | None = Field(default=None, exclude=True)

    # The messages API requires max_tokens on every request
    default_max_tokens: int = Field(default=4096, ge=1)

    def model_post_init(self, __context) -> None:
        """Initialize the shared AsyncAnthropic client."""
        from agentrun.config import settings

        # Resolve API Key: argument > config > env
        resolved_api_key = None
        if self.api_key:
            resolved_api_key = self.api_key.get_secret_value()
        elif settings.anthropic_api_key:
            resolved_api_key = settings.anthropic_api_key.get_secret_value()
        else:
            resolved_api_key = os.getenv("ANTHROPIC_API_KEY")

        if self.client is None:
            client_kwargs: dict[str, Any] = {"api_key": resolved_api_key, "max_retries": 0}
            base_url = self.base_url or settings.anthropic_base_url
            if base_url:
                client_kwargs["base_url"] = base_url
            if self.timeout:
                client_kwargs["timeout"] = self.timeout
            self.client = AsyncAnthropic(**client_kwargs)

        super().model_post_init(__context)

    def _convert_messages(self, messages: list[Message]) -> tuple[str | None, list[dict]]:
        """Convert agentrun messages to Anthropic format."""
        system_prompt = None
        converted: list[dict] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_prompt = msg.text
            elif msg.role == MessageRole.USER:
                content = msg.content if isinstance(msg.content, (str, list)) else msg.text
                converted.append({"role": "user", "content": content})
            elif msg.role == MessageRole.ASSISTANT:
                if msg.tool_calls:
                    blocks: list[dict] = []
                    if msg.text:
                        blocks.append({"type": "text", "text": msg.text})
                    for call in msg.tool_calls:
                        blocks.append(
                            {
                                "type": "tool_use",
                                "id": call.id,
                                "name": call.name,
                                "input": call.arguments,
                            }
                        )
                    converted.append({"role": "assistant", "content": blocks})
                else:
                    converted.append({"role": "assistant", "content": msg.text})
            elif msg.role == MessageRole.TOOL:
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.text,
                }
                # Results for one assistant turn travel in a single user message
                previous = converted[-1] if converted else None
                if (
                    previous
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and previous["content"]
                    and previous["content"][0].get("type") == "tool_result"
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})

        return system_prompt, converted

    def _convert_tools(self, tools: list[dict] | None) -> list[dict] | None:
        """Convert OpenAI format tools to Anthropic format."""
        if not tools:
            return None

        converted = []
        for tool in tools:
            if tool.get("type") == "function":
                func = tool["function"]
                converted.append(
                    {
                        "name": func["name"],
                        "description": func.get("description", ""),
                        "input_schema": func.get("parameters", {"type": "object"}),
                    }
                )

        return converted or None

    async def complete(
        self,
        messages: list[Message],
        params: GenerationParams,
    ) -> TextResponse | ToolCallsResponse:
        system_prompt, converted = self._convert_messages(messages)
        request: dict[str, Any] = {
            "model": params.model,
            "messages": converted,
            "max_tokens": params.max_tokens or self.default_max_tokens,
            "temperature": min(params.temperature, 1.0),
        }
        if system_prompt:
            request["system"] = system_prompt
        tools = self._convert_tools(params.tools)
        if tools:
            request["tools"] = tools

        try:
            response = await self.client.messages.create(**request)
        except Exception as e:
            mapped = map_anthropic_error(e)
            logger.error(
                "llm_request_failed",
                provider=self.name,
                model=params.model,
                error=str(e),
                error_type=type(e).__name__,
                error_kind=getattr(mapped, "kind", None),
                messages_count=len(messages),
                tools_count=len(tools or []),
            )
            if mapped is e:
                raise
            raise mapped from e

        return self._normalize(response)

    def _normalize(self, response: Any) -> TextResponse | ToolCallsResponse:
        usage = None
        if getattr(response, "usage", None):
            input_tokens = response.usage.input_tokens or 0
            output_tokens = response.usage.output_tokens or 0
            usage = Usage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            )

        texts: list[str] = []
        calls: list[ToolCall] = []
        for block in response.content or []:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                arguments = block.input if isinstance(block.input, dict) else {}
                calls.append(ToolCall(id=block.id, name=block.name, arguments=arguments))

        text = "".join(texts)
        if calls:
            return ToolCallsResponse(calls=calls, content=text or None, usage=usage)
        return TextResponse(content=text, usage=usage)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


__all__ = ["AnthropicProvider", "map_anthropic_error"]
