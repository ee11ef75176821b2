"""
Runtime module - the agent loop and its supporting machinery.

This module contains:
- Runner: drives an agent against a session until a final answer
- ToolDispatcher: bounded-concurrency tool dispatch with ordered results
- SessionLockManager: one in-flight run per session
- GuardrailChain and built-in filters for input/output checks
"""

from agentrun.runtime.guardrails import (
    FilterAction,
    FilterResult,
    GuardrailChain,
    keyword_filter,
    length_filter,
    pii_filter,
)
from agentrun.runtime.locks import SessionLockManager
from agentrun.runtime.runner import Runner, RunState
from agentrun.runtime.tool_executor import ToolDispatcher

__all__ = [
    "FilterAction",
    "FilterResult",
    "GuardrailChain",
    "RunState",
    "Runner",
    "SessionLockManager",
    "ToolDispatcher",
    "keyword_filter",
    "length_filter",
    "pii_filter",
]
