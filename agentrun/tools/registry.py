"""
Tool Registry - validation and dispatch for an agent's tool set.

``invoke`` never raises outward: unknown tools, invalid arguments, handler
exceptions and timeouts all come back as ``ToolResult(status="error")`` so
the conversation can continue.
"""

import asyncio
import inspect
import time
from typing import Any, Iterable

from agentrun.domain import (
    DuplicateToolName,
    MissingRequiredParameter,
    ToolError,
    ToolExecutionError,
    ToolResult,
    TypeMismatch,
)
from agentrun.tools.base import ToolContext, ToolParameter, ToolSpec
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

_PYTHON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list, tuple),
}


def _check_type(param: ToolParameter, value: Any, tool_name: str) -> None:
    if param.type == "any" or value is None and not param.required:
        return
    expected = _PYTHON_TYPES[param.type]
    # bool is an int subclass; JSON booleans are not numbers
    if isinstance(value, bool) and param.type in ("integer", "number"):
        raise TypeMismatch(param.name, param.type, "boolean", tool_name=tool_name)
    if not isinstance(value, expected):
        raise TypeMismatch(param.name, param.type, type(value).__name__, tool_name=tool_name)
    if param.enum and value not in param.enum:
        raise TypeMismatch(
            param.name,
            f"one of {list(param.enum)}",
            repr(value),
            tool_name=tool_name,
        )


class ToolRegistry:
    """
    Registry for one agent's tools.

    Usage:
        registry = ToolRegistry([get_weather])
        result = await registry.invoke("get_weather", {"location": "Paris"})
    """

    def __init__(self, tools: Iterable[ToolSpec] = ()) -> None:
        self._tools: dict[str, ToolSpec] = {}
        for spec in tools:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        """Register a tool; names are unique within the registry."""
        if spec.name in self._tools:
            raise DuplicateToolName(spec.name)
        self._tools[spec.name] = spec
        logger.debug("tool_registered", tool_name=spec.name)

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """OpenAI function-calling definitions, in registration order."""
        return [spec.to_openai_schema() for spec in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def validate(self, name: str, arguments: dict[str, Any] | None) -> dict[str, Any]:
        """
        Check arguments against the tool's schema.

        Returns the arguments with defaults applied and undeclared keys
        removed.

        Raises:
            ToolExecutionError: unknown tool
            MissingRequiredParameter: a required parameter is absent
            TypeMismatch: a value has the wrong type or is outside its enum
        """
        spec = self._tools.get(name)
        if spec is None:
            raise ToolExecutionError(
                f"Tool {name!r} not found. Available: {self.names()}", tool_name=name
            )

        arguments = dict(arguments or {})
        validated: dict[str, Any] = {}
        for param in spec.parameters:
            if param.name not in arguments:
                if param.required:
                    raise MissingRequiredParameter(param.name, tool_name=name)
                validated[param.name] = param.default
                continue
            value = arguments.pop(param.name)
            _check_type(param, value, name)
            validated[param.name] = value

        if arguments:
            logger.debug("tool_arguments_ignored", tool_name=name, ignored=sorted(arguments))

        return validated

    async def invoke(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        tool_call_id: str | None = None,
        timeout: float | None = None,
        context: ToolContext | None = None,
    ) -> ToolResult:
        """
        Validate and run a tool.

        The handler is never called when validation fails. ``timeout``
        applies when the tool does not declare its own.
        """
        start_time = time.time()

        def _failure(kind: str, detail: str) -> ToolResult:
            return ToolResult.failure(
                name,
                kind,
                detail,
                tool_call_id=tool_call_id,
                duration=time.time() - start_time,
            )

        try:
            validated = self.validate(name, arguments)
        except ToolError as e:
            logger.info("tool_validation_failed", tool_name=name, error_kind=e.kind, error=e.message)
            return _failure(e.kind, e.message)

        spec = self._tools[name]
        if spec.takes_context:
            validated["context"] = context

        effective_timeout = spec.timeout or timeout

        try:
            logger.debug("executing_tool", tool_name=name, tool_call_id=tool_call_id)
            payload = await asyncio.wait_for(self._call(spec, validated), timeout=effective_timeout)
        except asyncio.TimeoutError:
            logger.warning("tool_execution_timeout", tool_name=name, timeout=effective_timeout)
            return _failure(ToolExecutionError.kind, f"{name} timed out after {effective_timeout}s")
        except ToolError as e:
            return _failure(e.kind, e.message)
        except Exception as e:
            logger.error(
                "tool_execution_exception",
                tool_name=name,
                error=str(e),
                exc_info=True,
            )
            return _failure(ToolExecutionError.kind, f"{type(e).__name__}: {e}")

        if isinstance(payload, ToolResult):
            payload.tool_call_id = payload.tool_call_id or tool_call_id
            return payload

        duration = time.time() - start_time
        logger.debug("tool_execution_completed", tool_name=name, duration=duration)
        return ToolResult.success(name, payload, tool_call_id=tool_call_id, duration=duration)

    @staticmethod
    async def _call(spec: ToolSpec, arguments: dict[str, Any]) -> Any:
        result = spec.handler(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


__all__ = ["ToolRegistry"]
