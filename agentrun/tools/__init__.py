"""
Tools: explicit descriptors and the per-agent registry.
"""

from agentrun.tools.base import ParameterType, ToolContext, ToolParameter, ToolSpec, tool
from agentrun.tools.registry import ToolRegistry

__all__ = [
    "ParameterType",
    "ToolContext",
    "ToolParameter",
    "ToolRegistry",
    "ToolSpec",
    "tool",
]
