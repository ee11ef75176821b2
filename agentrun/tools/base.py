"""
Tool descriptors.

Tools are declared explicitly: a name, a parameter schema and a handler.
Nothing is inferred from the handler's signature.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ParameterType = Literal["string", "integer", "number", "boolean", "object", "array", "any"]

TOOL_NAME_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"


class ToolParameter(BaseModel):
    """Describes a single tool parameter"""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ParameterType = "string"
    description: str = ""
    required: bool = True
    default: Any = None
    enum: tuple[Any, ...] | None = None

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {}
        if self.type != "any":
            schema["type"] = self.type
        if self.description:
            schema["description"] = self.description
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.default is not None:
            schema["default"] = self.default
        return schema


class ToolSpec(BaseModel):
    """
    A named, schema-validated capability the model may invoke.

    ``handler`` may be a plain function or a coroutine function. It receives
    the validated arguments as keyword arguments, plus ``context`` (a
    ToolContext) when ``takes_context`` is set.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(pattern=TOOL_NAME_PATTERN)
    description: str = ""
    parameters: tuple[ToolParameter, ...] = ()
    handler: Callable[..., Any]
    timeout: float | None = Field(default=None, gt=0)
    takes_context: bool = False

    @field_validator("parameters")
    @classmethod
    def _unique_parameters(cls, value: tuple[ToolParameter, ...]) -> tuple[ToolParameter, ...]:
        names = [p.name for p in value]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate parameter names: {names}")
        return value

    def parameter(self, name: str) -> ToolParameter | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    def to_openai_schema(self) -> dict[str, Any]:
        """Export as an OpenAI function-calling definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {p.name: p.to_schema() for p in self.parameters},
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }


@dataclass
class ToolContext:
    """Run-scoped state handed to tools that ask for it."""

    session_id: str
    agent_name: str
    variables: dict[str, Any] = field(default_factory=dict)


def tool(
    name: str | None = None,
    description: str | None = None,
    parameters: list[ToolParameter] | tuple[ToolParameter, ...] = (),
    timeout: float | None = None,
    takes_context: bool = False,
) -> Callable[[Callable[..., Any]], ToolSpec]:
    """
    Decorator that wraps a function into a ToolSpec.

    The parameter schema is declared explicitly:

        @tool(parameters=[ToolParameter(name="location", type="string")])
        async def get_weather(location: str) -> str:
            ...
    """

    def decorator(func: Callable[..., Any]) -> ToolSpec:
        return ToolSpec(
            name=name or func.__name__,
            description=description if description is not None else (func.__doc__ or "").strip(),
            parameters=tuple(parameters),
            handler=func,
            timeout=timeout,
            takes_context=takes_context,
        )

    return decorator


__all__ = ["ParameterType", "ToolContext", "ToolParameter", "ToolSpec", "tool"]
