"""
Domain layer: value types, session state and the error taxonomy.
"""

from agentrun.domain.errors import (
    AgentRunError,
    AuthenticationFailed,
    ContextOverflow,
    DeadlineExceeded,
    DuplicateToolName,
    GuardrailTripped,
    InternalError,
    InvalidMessageSequence,
    MissingRequiredParameter,
    OutputValidationError,
    ProviderError,
    ProviderTimeout,
    ProviderUnavailable,
    RateLimited,
    SessionLocked,
    StorageError,
    ToolError,
    ToolExecutionError,
    TurnLimitExceeded,
    TypeMismatch,
)
from agentrun.domain.models import (
    ErrorInfo,
    Message,
    MessageContent,
    MessageRole,
    RunResult,
    ToolCall,
    ToolResult,
    Usage,
)
from agentrun.domain.session import Session

__all__ = [
    # Models
    "ErrorInfo",
    "Message",
    "MessageContent",
    "MessageRole",
    "RunResult",
    "Session",
    "ToolCall",
    "ToolResult",
    "Usage",
    # Errors
    "AgentRunError",
    "AuthenticationFailed",
    "ContextOverflow",
    "DeadlineExceeded",
    "DuplicateToolName",
    "GuardrailTripped",
    "InternalError",
    "InvalidMessageSequence",
    "MissingRequiredParameter",
    "OutputValidationError",
    "ProviderError",
    "ProviderTimeout",
    "ProviderUnavailable",
    "RateLimited",
    "SessionLocked",
    "StorageError",
    "ToolError",
    "ToolExecutionError",
    "TurnLimitExceeded",
    "TypeMismatch",
]
