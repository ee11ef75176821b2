"""
LLM provider adapters.
"""

from .anthropic import AnthropicProvider
from .base import GenerationParams, ModelProvider, ProviderResponse, TextResponse, ToolCallsResponse
from .openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "GenerationParams",
    "ModelProvider",
    "OpenAIProvider",
    "ProviderResponse",
    "TextResponse",
    "ToolCallsResponse",
]
