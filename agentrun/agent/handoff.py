"""
Hand-off tools.

Each hand-off target is exposed to the model as a parameterless tool named
``transfer_to_<agent>``. The runner intercepts these calls and switches the
active agent instead of dispatching them through the registry.
"""

import re

from agentrun.tools.base import ToolSpec

HANDOFF_PREFIX = "transfer_to_"


def handoff_tool_name(agent_name: str) -> str:
    """``Billing Agent`` -> ``transfer_to_billing_agent``"""
    slug = re.sub(r"[^a-z0-9_]+", "_", agent_name.lower()).strip("_")
    return f"{HANDOFF_PREFIX}{slug}"[:64]


def make_handoff_tool(agent_name: str) -> ToolSpec:
    def _transfer() -> dict[str, str]:
        return {"assistant": agent_name}

    return ToolSpec(
        name=handoff_tool_name(agent_name),
        description=(
            f"Hand off the conversation to the {agent_name} agent. "
            "Call this when the request is better handled by that agent."
        ),
        handler=_transfer,
    )


__all__ = ["HANDOFF_PREFIX", "handoff_tool_name", "make_handoff_tool"]
