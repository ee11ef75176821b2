"""
Agent definitions.
"""

from agentrun.agent.catalog import AgentCatalog
from agentrun.agent.handoff import HANDOFF_PREFIX, handoff_tool_name, make_handoff_tool
from agentrun.agent.output import output_schema, parse_output, strip_code_fence
from agentrun.agent.spec import AgentSpec

__all__ = [
    "AgentCatalog",
    "AgentSpec",
    "HANDOFF_PREFIX",
    "handoff_tool_name",
    "make_handoff_tool",
    "output_schema",
    "parse_output",
    "strip_code_fence",
]
