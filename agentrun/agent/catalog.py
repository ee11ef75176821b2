"""
AgentCatalog - name lookup for hand-off targets.
"""

from typing import Iterable, Iterator

from agentrun.agent.spec import AgentSpec


class AgentCatalog:
    """Read-mostly mapping of agent name -> AgentSpec."""

    def __init__(self, agents: Iterable[AgentSpec] = ()) -> None:
        self._agents: dict[str, AgentSpec] = {}
        for agent in agents:
            self.add(agent)

    def add(self, agent: AgentSpec) -> None:
        existing = self._agents.get(agent.name)
        if existing is not None and existing is not agent:
            raise ValueError(f"Agent {agent.name!r} is already registered")
        self._agents[agent.name] = agent

    def get(self, name: str | None) -> AgentSpec | None:
        if name is None:
            return None
        return self._agents.get(name)

    def names(self) -> list[str]:
        return list(self._agents)

    def __contains__(self, name: object) -> bool:
        return name in self._agents

    def __iter__(self) -> Iterator[AgentSpec]:
        return iter(self._agents.values())

    def __len__(self) -> int:
        return len(self._agents)


__all__ = ["AgentCatalog"]
