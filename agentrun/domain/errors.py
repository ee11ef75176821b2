"""
Error taxonomy.

Every error carries a ``kind`` (the name surfaced to callers and to the
model) and a ``retryable`` flag used by the runner's retry policy.
"""

from typing import Any

from agentrun.domain.models import ErrorInfo


class AgentRunError(Exception):
    """Base exception for all agentrun errors."""

    kind: str = "AgentRunError"
    retryable: bool = False
    fatal: bool = True

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.details = details

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            message=self.message,
            retryable=self.retryable,
            details=self.details,
        )


# ============================================================================
# Provider errors
# ============================================================================


class ProviderError(AgentRunError):
    kind = "ProviderError"


class ProviderUnavailable(ProviderError):
    """Network failure or 5xx from the backend."""

    kind = "ProviderUnavailable"
    retryable = True


class RateLimited(ProviderError):
    kind = "RateLimited"
    retryable = True

    def __init__(self, message: str = "", retry_after: float | None = None, **details: Any):
        super().__init__(message, retry_after=retry_after, **details)
        self.retry_after = retry_after


class ProviderTimeout(ProviderError):
    kind = "Timeout"
    retryable = True


class AuthenticationFailed(ProviderError):
    kind = "AuthenticationFailed"


# ============================================================================
# Tool errors
# ============================================================================


class ToolError(AgentRunError):
    kind = "ToolError"


class ToolExecutionError(ToolError):
    kind = "ToolExecutionError"


class MissingRequiredParameter(ToolError):
    kind = "MissingRequiredParameter"

    def __init__(self, parameter: str, tool_name: str | None = None):
        super().__init__(parameter, parameter=parameter, tool_name=tool_name)
        self.parameter = parameter


class TypeMismatch(ToolError):
    kind = "TypeMismatch"

    def __init__(self, parameter: str, expected: str, actual: str, tool_name: str | None = None):
        super().__init__(
            f"{parameter} expected {expected}, got {actual}",
            parameter=parameter,
            expected=expected,
            actual=actual,
            tool_name=tool_name,
        )
        self.parameter = parameter
        self.expected = expected
        self.actual = actual


class DuplicateToolName(ToolError):
    kind = "DuplicateToolName"

    def __init__(self, name: str):
        super().__init__(name, name=name)
        self.name = name


# ============================================================================
# Runner errors
# ============================================================================


class TurnLimitExceeded(AgentRunError):
    kind = "TurnLimitExceeded"

    def __init__(self, max_turns: int):
        super().__init__(f"Run stopped after {max_turns} turns", max_turns=max_turns)
        self.max_turns = max_turns


class SessionLocked(AgentRunError):
    kind = "SessionLocked"

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} already has a run in progress", session_id=session_id)
        self.session_id = session_id


class DeadlineExceeded(AgentRunError):
    kind = "DeadlineExceeded"

    def __init__(self, deadline: float):
        super().__init__(f"Run exceeded its {deadline}s deadline", deadline=deadline)
        self.deadline = deadline


class GuardrailTripped(AgentRunError):
    kind = "GuardrailTripped"

    def __init__(self, guardrail: str, reason: str | None = None):
        super().__init__(reason or f"Blocked by {guardrail}", guardrail=guardrail)
        self.guardrail = guardrail
        self.reason = reason


# ============================================================================
# Memory / session errors
# ============================================================================


class ContextOverflow(AgentRunError):
    """Recorded as a warning by the memory manager; never raised from build_context."""

    kind = "ContextOverflow"
    fatal = False

    def __init__(self, required_tokens: int, budget_tokens: int):
        super().__init__(
            f"Minimal context needs {required_tokens} tokens, budget is {budget_tokens}",
            required_tokens=required_tokens,
            budget_tokens=budget_tokens,
        )
        self.required_tokens = required_tokens
        self.budget_tokens = budget_tokens


class InvalidMessageSequence(AgentRunError, ValueError):
    kind = "InvalidMessageSequence"


class OutputValidationError(AgentRunError):
    """The final answer does not match the agent's output type."""

    kind = "OutputValidationError"


class StorageError(AgentRunError):
    """The session store failed to load or persist a session."""

    kind = "StorageError"


# ============================================================================
# Unexpected failures
# ============================================================================


class InternalError(AgentRunError):
    """Wraps an exception no other kind covers, so a run can still report it."""

    kind = "InternalError"

    @classmethod
    def wrap(cls, exc: BaseException) -> "InternalError":
        return cls(str(exc) or type(exc).__name__, exception=type(exc).__name__)


__all__ = [
    "AgentRunError",
    "ProviderError",
    "ProviderUnavailable",
    "RateLimited",
    "ProviderTimeout",
    "AuthenticationFailed",
    "ToolError",
    "ToolExecutionError",
    "MissingRequiredParameter",
    "TypeMismatch",
    "DuplicateToolName",
    "TurnLimitExceeded",
    "SessionLocked",
    "DeadlineExceeded",
    "GuardrailTripped",
    "ContextOverflow",
    "InvalidMessageSequence",
    "OutputValidationError",
    "StorageError",
    "InternalError",
]
