"""
API dependency injection.

The application factory stores the runner and agent catalog on
``app.state``; routes obtain them through these dependencies.
"""

from fastapi import HTTPException, Request

from agentrun.agent import AgentCatalog, AgentSpec
from agentrun.runtime import Runner


def get_runner(request: Request) -> Runner:
    return request.app.state.runner


def get_agents(request: Request) -> AgentCatalog:
    return request.app.state.agents


def resolve_agent(request: Request, name: str | None = None) -> AgentSpec:
    """Agent by name, or the application default when ``name`` is None."""
    agent_name = name or request.app.state.default_agent
    agent = get_agents(request).get(agent_name)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"Agent not found: {agent_name}")
    return agent


__all__ = ["get_agents", "get_runner", "resolve_agent"]
