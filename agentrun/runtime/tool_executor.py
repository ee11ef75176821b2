"""
Tool dispatcher - runs one turn's tool calls with bounded concurrency.
"""

import asyncio

from agentrun.domain import ToolCall, ToolExecutionError, ToolResult
from agentrun.tools import ToolContext, ToolRegistry
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


class ToolDispatcher:
    """
    Dispatches tool calls through a ToolRegistry.

    Calls within a turn run concurrently, at most ``max_parallel`` at a
    time. Results always come back in request order, whatever order the
    calls finish in.
    """

    def __init__(self, max_parallel: int = 4, timeout: float | None = 30.0):
        if max_parallel < 1:
            raise ValueError("max_parallel must be at least 1")
        self.max_parallel = max_parallel
        self.timeout = timeout

    async def execute(
        self,
        registry: ToolRegistry,
        call: ToolCall,
        context: ToolContext | None = None,
    ) -> ToolResult:
        if call.parse_error:
            logger.info("tool_arguments_unparseable", tool_name=call.name, error=call.parse_error)
            return ToolResult.failure(
                call.name or "unknown",
                ToolExecutionError.kind,
                call.parse_error,
                tool_call_id=call.id,
            )
        return await registry.invoke(
            call.name,
            call.arguments,
            tool_call_id=call.id,
            timeout=self.timeout,
            context=context,
        )

    async def execute_batch(
        self,
        registry: ToolRegistry,
        calls: list[ToolCall],
        context: ToolContext | None = None,
    ) -> list[ToolResult]:
        if not calls:
            return []
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def _bounded(call: ToolCall) -> ToolResult:
            async with semaphore:
                return await self.execute(registry, call, context)

        logger.debug("dispatching_tools", count=len(calls), max_parallel=self.max_parallel)
        return list(await asyncio.gather(*(_bounded(call) for call in calls)))


__all__ = ["ToolDispatcher"]
