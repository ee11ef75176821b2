"""
AgentSpec - immutable agent template.

An AgentSpec is shared by reference across concurrent runs; nothing on it
changes after construction.
"""

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from agentrun.agent.handoff import handoff_tool_name, make_handoff_tool
from agentrun.agent.output import output_schema
from agentrun.domain import DuplicateToolName
from agentrun.providers.llm.base import GenerationParams
from agentrun.tools import ToolRegistry, ToolSpec


class AgentSpec(BaseModel):
    """
    Behavioral template: instructions, model, tools and generation parameters.

    Tool names are validated at construction, including the generated
    ``transfer_to_<agent>`` hand-off tools; a collision raises
    DuplicateToolName.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, protected_namespaces=())

    name: str = Field(min_length=1)
    instructions: str = ""
    model: str = "gpt-4o-mini"
    tools: tuple[ToolSpec, ...] = ()

    # Generation parameters
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_output_tokens: int | None = Field(default=None, ge=1)

    # Names of agents this agent may hand the conversation to
    handoffs: tuple[str, ...] = ()

    # Final answers must be JSON matching this model
    output_type: type[BaseModel] | None = None

    # Filter callables, see agentrun.runtime.guardrails
    input_guardrails: tuple[Callable[..., Any], ...] = ()
    output_guardrails: tuple[Callable[..., Any], ...] = ()

    _registry: ToolRegistry = PrivateAttr()
    _handoff_targets: dict[str, str] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        registry = ToolRegistry()
        for spec in self.tools:
            registry.register(spec)

        targets: dict[str, str] = {}
        for target in self.handoffs:
            spec = make_handoff_tool(target)
            if spec.name in registry:
                raise DuplicateToolName(spec.name)
            registry.register(spec)
            targets[spec.name] = target

        self._registry = registry
        self._handoff_targets = targets

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def handoff_target(self, tool_name: str) -> str | None:
        """Agent name behind a ``transfer_to_*`` tool, if this agent offers it."""
        return self._handoff_targets.get(tool_name)

    def generation_params(self) -> GenerationParams:
        return GenerationParams(
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_output_tokens,
            tools=self._registry.schemas() or None,
            response_schema=output_schema(self.output_type) if self.output_type else None,
        )


__all__ = ["AgentSpec", "handoff_tool_name"]
