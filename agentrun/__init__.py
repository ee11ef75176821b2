"""
agentrun - agent execution runner

Top-level exports for easy access to core functionality.
"""

__version__ = "0.1.0"

# Agents
from agentrun.agent import AgentCatalog, AgentSpec

# Domain models
from agentrun.domain import (
    AgentRunError,
    ErrorInfo,
    Message,
    MessageRole,
    RunResult,
    Session,
    ToolCall,
    ToolResult,
    Usage,
)

# Memory
from agentrun.memory import (
    HybridStrategy,
    MemoryManager,
    SemanticStrategy,
    SlidingWindowStrategy,
    SummarizationStrategy,
)

# Providers
from agentrun.providers.llm import AnthropicProvider, ModelProvider, OpenAIProvider
from agentrun.providers.storage import InMemorySessionStore, RedisSessionStore, SessionStore

# Runtime
from agentrun.runtime import GuardrailChain, Runner

# Tools
from agentrun.tools import ToolParameter, ToolRegistry, ToolSpec, tool

# Config
from agentrun.config import ExecutionConfig, settings

__all__ = [
    # Agents
    "AgentCatalog",
    "AgentSpec",
    # Domain
    "AgentRunError",
    "ErrorInfo",
    "Message",
    "MessageRole",
    "RunResult",
    "Session",
    "ToolCall",
    "ToolResult",
    "Usage",
    # Memory
    "HybridStrategy",
    "MemoryManager",
    "SemanticStrategy",
    "SlidingWindowStrategy",
    "SummarizationStrategy",
    # Providers
    "AnthropicProvider",
    "ModelProvider",
    "OpenAIProvider",
    "InMemorySessionStore",
    "RedisSessionStore",
    "SessionStore",
    # Runtime
    "GuardrailChain",
    "Runner",
    # Tools
    "ToolParameter",
    "ToolRegistry",
    "ToolSpec",
    "tool",
    # Config
    "ExecutionConfig",
    "settings",
    "__version__",
]
