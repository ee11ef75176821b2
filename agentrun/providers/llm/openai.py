"""
OpenAI provider - chat completions API.
"""

import os
from typing import Any

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
)
from pydantic import ConfigDict, Field, SecretStr

from agentrun.domain import (
    AuthenticationFailed,
    Message,
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
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


def parse_retry_after(headers: Any) -> float | None:
    """Seconds from a ``retry-after`` header, if it is numeric."""
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def map_openai_error(e: Exception) -> Exception:
    """Translate an openai SDK exception into the agentrun taxonomy."""
    # APITimeoutError subclasses APIConnectionError, check it first
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
        return ProviderError(str(e), status_code=e.status_code)
    return e


class OpenAIProvider(ModelProvider):
    """
    OpenAI provider.

    Supports GPT-4o, GPT-4.1 and any OpenAI API compatible endpoint.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    name: str = "openai"
    api_key: SecretStr | None = Field(default=None, exclude=True)
    base_url: str | None = Field(default=None)
    timeout: float | None = Field(default=None, description="Client-level request timeout")
    client: AsyncOpenAI | None = Field(default=None, exclude=True)

    def model_post_init(self, __context) -> None:
        """Initialize the shared AsyncOpenAI client."""
        from agentrun.config import settings

        # Resolve API Key: argument > config > env
        resolved_api_key = None
        if self.api_key:
            resolved_api_key = self.api_key.get_secret_value()
        elif settings.openai_api_key:
            resolved_api_key = settings.openai_api_key.get_secret_value()
        else:
            resolved_api_key = os.getenv("OPENAI_API_KEY")

        resolved_base_url = (
            self.base_url or settings.openai_base_url or os.getenv("OPENAI_BASE_URL")
        )

        if self.client is None:
            client_kwargs: dict[str, Any] = {
                "api_key": resolved_api_key,
                "base_url": resolved_base_url,
                # Retries are owned by the runner
                "max_retries": 0,
            }
            if self.timeout:
                client_kwargs["timeout"] = self.timeout
            self.client = AsyncOpenAI(**client_kwargs)

        super().model_post_init(__context)

    async def complete(
        self,
        messages: list[Message],
        params: GenerationParams,
    ) -> TextResponse | ToolCallsResponse:
        request: dict[str, Any] = {
            "model": params.model,
            "messages": [m.to_openai() for m in messages],
            "temperature": params.temperature,
        }
        if params.max_tokens:
            request["max_tokens"] = params.max_tokens
        if params.tools:
            request["tools"] = params.tools
        if params.response_schema:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {**params.response_schema, "strict": False},
            }

        try:
            response = await self.client.chat.completions.create(**request)
        except Exception as e:
            mapped = map_openai_error(e)
            logger.error(
                "llm_request_failed",
                provider=self.name,
                model=params.model,
                error=str(e),
                error_type=type(e).__name__,
                error_kind=getattr(mapped, "kind", None),
                messages_count=len(messages),
                tools_count=len(params.tools or []),
            )
            if mapped is e:
                raise
            raise mapped from e

        return self._normalize(response)

    def _normalize(self, response: Any) -> TextResponse | ToolCallsResponse:
        usage = None
        if getattr(response, "usage", None):
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
                total_tokens=response.usage.total_tokens or 0,
            )

        if not response.choices:
            raise ProviderUnavailable("Empty completion (no choices)")
        message = response.choices[0].message

        if message.tool_calls:
            calls = [
                ToolCall.from_openai(
                    {
                        "id": tc.id,
                        "function": {
                            "name": tc.function.name,
                            "arguments": tc.function.arguments,
                        },
                    }
                )
                for tc in message.tool_calls
            ]
            return ToolCallsResponse(calls=calls, content=message.content or None, usage=usage)

        return TextResponse(content=message.content or "", usage=usage)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


__all__ = ["OpenAIProvider", "map_openai_error", "parse_retry_after"]
