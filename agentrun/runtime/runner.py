"""
Runner - the agent loop.

One ``run`` call:
1. takes the session lock (never waits)
2. appends the user message
3. alternates provider calls and tool dispatch until the model answers
   in plain text, the turn limit is hit, or the deadline passes
4. persists the session and returns a RunResult

Failures never escape ``run`` as exceptions (only invalid arguments raise);
they come back as ``RunResult(success=False, error=...)`` or as error tool
messages the model can react to. Anything outside the error taxonomy is
reported as ``InternalError``.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

from agentrun.agent import AgentCatalog, AgentSpec, parse_output
from agentrun.config import ExecutionConfig
from agentrun.domain import (
    AgentRunError,
    ContextOverflow,
    DeadlineExceeded,
    GuardrailTripped,
    InternalError,
    Message,
    MessageContent,
    OutputValidationError,
    ProviderError,
    ProviderTimeout,
    RunResult,
    Session,
    SessionLocked,
    StorageError,
    ToolCall,
    ToolExecutionError,
    ToolResult,
    TurnLimitExceeded,
)
from agentrun.memory import MemoryManager
from agentrun.providers.llm.base import ModelProvider, TextResponse, ToolCallsResponse
from agentrun.providers.storage import InMemorySessionStore, SessionStore
from agentrun.runtime.guardrails import GuardrailChain
from agentrun.runtime.locks import SessionLockManager
from agentrun.runtime.tool_executor import ToolDispatcher
from agentrun.tools import ToolContext
from agentrun.utils.logging import get_logger
from agentrun.utils.retry import async_retrying

logger = get_logger(__name__)


def _not_executed(reason: str) -> str:
    return f"[Execution interrupted: {reason}. This tool call was not executed.]"


@dataclass
class RunState:
    """Mutable state of one run; survives cancellation by the deadline."""

    session: Session
    agent: AgentSpec
    result: RunResult

    def append(self, message: Message) -> None:
        self.session.append(message)
        self.result.messages.append(message)


class Runner:
    """
    Drives agents against sessions.

    A Runner is shared by all sessions; AgentSpecs, the provider client and
    the store are shared by reference. Runs on distinct sessions proceed
    concurrently; a second run on a busy session fails with SessionLocked.

    Usage:
        runner = Runner(provider=OpenAIProvider(api_key=...))
        result = await runner.run("session-1", "Hello", agent)
    """

    def __init__(
        self,
        provider: ModelProvider,
        store: SessionStore | None = None,
        memory: MemoryManager | None = None,
        config: ExecutionConfig | None = None,
        agents: AgentCatalog | None = None,
        locks: SessionLockManager | None = None,
    ):
        self.provider = provider
        self.store = store or InMemorySessionStore()
        self.memory = memory or MemoryManager()
        self.config = config or ExecutionConfig()
        self.agents = agents if agents is not None else AgentCatalog()
        self.locks = locks if locks is not None else SessionLockManager()
        self.dispatcher = ToolDispatcher(
            max_parallel=self.config.max_parallel_tools,
            timeout=self.config.tool_timeout,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        session_id: str,
        message: MessageContent,
        agent: AgentSpec,
        max_turns: int | None = None,
        *,
        context: dict[str, Any] | None = None,
        deadline: float | None = None,
    ) -> RunResult:
        """
        Run ``agent`` on ``session_id`` until it produces a final answer.

        Args:
            session_id: Session to run against; created when unknown
            message: User message, plain text or structured content
            agent: Entry agent (a persisted hand-off target takes precedence)
            max_turns: Maximum provider calls, defaults to config.max_turns
            context: Variables merged into the session and visible to tools
            deadline: Overall time limit in seconds, defaults to config.run_deadline

        Raises:
            ValueError: empty session id or non-positive max_turns
        """
        if not session_id:
            raise ValueError("session_id must be a non-empty string")
        max_turns = self.config.max_turns if max_turns is None else max_turns
        if max_turns < 1:
            raise ValueError("max_turns must be a positive integer")
        deadline = deadline if deadline is not None else self.config.run_deadline

        result = RunResult(session_id=session_id, last_agent=agent.name)
        start_time = time.time()

        try:
            async with self.locks.hold(session_id):
                await self._run_locked(result, message, agent, max_turns, context, deadline)
        except SessionLocked as e:
            result.error = e.to_info()
        except Exception as e:
            logger.error(
                "run_internal_error",
                run_id=result.run_id,
                session_id=session_id,
                error=str(e),
                exc_info=True,
            )
            result.success = False
            result.error = (e if isinstance(e, AgentRunError) else InternalError.wrap(e)).to_info()

        result.duration = time.time() - start_time
        if result.success:
            logger.info(
                "run_completed",
                run_id=result.run_id,
                session_id=session_id,
                agent=result.last_agent,
                turns=result.turns,
                total_tokens=result.usage.total_tokens,
                duration=result.duration,
            )
        else:
            logger.warning(
                "run_failed",
                run_id=result.run_id,
                session_id=session_id,
                agent=result.last_agent,
                turns=result.turns,
                error_kind=result.error.kind if result.error else None,
                error=result.error.message if result.error else None,
            )
        return result

    async def get_session(self, session_id: str) -> Session | None:
        return await self.store.get(session_id)

    async def clear_session(self, session_id: str) -> bool:
        """Delete a session. Raises SessionLocked while a run holds it."""
        async with self.locks.hold(session_id):
            deleted = await self.store.delete(session_id)
        logger.info("session_cleared", session_id=session_id, existed=deleted)
        return deleted

    async def close(self) -> None:
        await self.provider.close()
        await self.store.close()

    # ------------------------------------------------------------------
    # Run internals
    # ------------------------------------------------------------------

    async def _run_locked(
        self,
        result: RunResult,
        message: MessageContent,
        agent: AgentSpec,
        max_turns: int,
        context: dict[str, Any] | None,
        deadline: float | None,
    ) -> None:
        try:
            stored = await self.store.get(result.session_id)
        except Exception as e:
            raise StorageError(f"Failed to load session: {e}", session_id=result.session_id) from e
        session = stored or Session(id=result.session_id)
        if context:
            session.variables.update(context)

        state = RunState(session=session, agent=self._resolve_agent(session, agent), result=result)
        result.last_agent = state.agent.name
        session.agent_name = state.agent.name
        self._sync_system_message(state)

        logger.info(
            "run_started",
            run_id=result.run_id,
            session_id=session.id,
            agent=state.agent.name,
            max_turns=max_turns,
        )

        try:
            if deadline is None:
                await self._execute(state, message, max_turns)
            else:
                await asyncio.wait_for(self._execute(state, message, max_turns), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning("run_deadline_exceeded", run_id=result.run_id, deadline=deadline)
            self._patch_pending(state, "run deadline exceeded")
            result.success = False
            result.error = DeadlineExceeded(deadline).to_info()
        except Exception:
            self._patch_pending(state, "run failed")
            raise
        finally:
            await self._persist(state)

    async def _execute(self, state: RunState, message: MessageContent, max_turns: int) -> None:
        result = state.result

        if isinstance(message, str):
            checked = await GuardrailChain(state.agent.input_guardrails).check(message)
            if checked.blocked:
                result.error = GuardrailTripped(checked.guardrail or "input", checked.reason).to_info()
                return
            message = checked.content

        # Leftovers from an interrupted earlier run would make the history invalid
        self._patch_pending(state, "superseded by a new message")
        state.append(Message.user(message))

        while result.turns < max_turns:
            result.turns += 1
            try:
                response = await self._complete(state)
            except AgentRunError as e:
                result.error = e.to_info()
                return

            if isinstance(response, TextResponse):
                await self._finish(state, response.content)
                return

            state.append(Message.assistant(response.content, tool_calls=response.calls))

            if result.turns >= max_turns:
                logger.warning(
                    "turn_limit_reached",
                    run_id=result.run_id,
                    max_turns=max_turns,
                    pending_tool_calls=len(response.calls),
                )
                self._patch_pending(state, "turn limit reached")
                break

            await self._dispatch(state, response.calls)

        result.error = TurnLimitExceeded(max_turns).to_info()

    async def _complete(self, state: RunState) -> TextResponse | ToolCallsResponse:
        window = self.memory.build_context(state.session, self.config.context_budget_tokens)
        if window.overflow and not any(
            w.kind == ContextOverflow.kind for w in state.result.warnings
        ):
            state.result.warnings.extend(window.warnings)

        params = state.agent.generation_params()
        response = None
        async for attempt in async_retrying(
            max_attempts=self.config.retry_max_attempts,
            min_wait=self.config.retry_min_wait,
            max_wait=self.config.retry_max_wait,
        ):
            with attempt:
                response = await self._call_provider(window.messages, params)

        state.result.usage.merge(response.usage)
        logger.debug(
            "provider_response",
            run_id=state.result.run_id,
            kind=response.kind,
            context_messages=len(window.messages),
            context_tokens=window.token_count,
        )
        return response

    async def _call_provider(self, messages, params):
        try:
            return await asyncio.wait_for(
                self.provider.complete(messages, params),
                timeout=self.config.provider_timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderTimeout(
                f"Provider call timed out after {self.config.provider_timeout}s",
                provider=self.provider.name,
            ) from None
        except AgentRunError:
            raise
        except Exception as e:
            # Unmapped SDK or transport error
            raise ProviderError(
                str(e) or type(e).__name__,
                provider=self.provider.name,
                exception=type(e).__name__,
            ) from e

    async def _finish(self, state: RunState, content: str) -> None:
        checked = await GuardrailChain(state.agent.output_guardrails).check(content)
        if checked.blocked:
            state.result.error = GuardrailTripped(checked.guardrail or "output", checked.reason).to_info()
            return
        state.append(Message.assistant(checked.content))

        output_type = state.agent.output_type
        if output_type is not None:
            try:
                parsed = parse_output(output_type, checked.content)
            except OutputValidationError as e:
                logger.warning(
                    "output_validation_failed",
                    run_id=state.result.run_id,
                    output_type=output_type.__name__,
                    errors=e.details.get("errors"),
                )
                state.result.error = e.to_info()
                return
            state.result.structured_output = parsed.model_dump(mode="json")
        state.result.success = True

    async def _dispatch(self, state: RunState, calls: list[ToolCall]) -> None:
        """Run one turn's tool calls and append their results in request order."""
        agent = state.agent
        handoff_to: AgentSpec | None = None
        outcomes: dict[str, ToolResult] = {}
        regular: list[ToolCall] = []

        for call in calls:
            target = agent.handoff_target(call.name)
            if target is None:
                regular.append(call)
                continue
            target_agent = self.agents.get(target)
            if target_agent is None:
                outcomes[call.id] = ToolResult.failure(
                    call.name,
                    ToolExecutionError.kind,
                    f"Unknown agent {target!r}",
                    tool_call_id=call.id,
                )
            elif handoff_to is None:
                handoff_to = target_agent
                outcomes[call.id] = ToolResult.success(
                    call.name, {"assistant": target_agent.name}, tool_call_id=call.id
                )
            else:
                outcomes[call.id] = ToolResult.failure(
                    call.name,
                    ToolExecutionError.kind,
                    f"Already handing off to {handoff_to.name!r}",
                    tool_call_id=call.id,
                )

        tool_context = ToolContext(
            session_id=state.session.id,
            agent_name=agent.name,
            variables=state.session.variables,
        )
        results = await self.dispatcher.execute_batch(agent.registry, regular, tool_context)
        for call, tool_result in zip(regular, results):
            outcomes[call.id] = tool_result

        for call in calls:
            outcome = outcomes[call.id]
            state.append(
                Message.tool(
                    call.id,
                    call.name,
                    outcome.content,
                    metadata={"status": outcome.status, "error_kind": outcome.error_kind},
                )
            )

        if handoff_to is not None:
            logger.info(
                "agent_handoff",
                run_id=state.result.run_id,
                from_agent=agent.name,
                to_agent=handoff_to.name,
            )
            state.agent = handoff_to
            state.session.agent_name = handoff_to.name
            state.result.last_agent = handoff_to.name
            self._sync_system_message(state)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_agent(self, session: Session, agent: AgentSpec) -> AgentSpec:
        if session.agent_name and session.agent_name != agent.name:
            handed_off = self.agents.get(session.agent_name)
            if handed_off is not None:
                return handed_off
        return agent

    async def _persist(self, state: RunState) -> None:
        """Save the session; a failed save never hides an earlier error."""
        session = state.session
        session.token_count = self.memory.estimator.count_messages(session.messages)
        try:
            await self.store.save(session)
        except Exception as e:
            logger.error(
                "session_save_failed",
                run_id=state.result.run_id,
                session_id=session.id,
                error=str(e),
                exc_info=True,
            )
            if state.result.error is None:
                state.result.success = False
                state.result.error = StorageError(
                    f"Failed to save session: {e}", session_id=session.id
                ).to_info()

    @staticmethod
    def _sync_system_message(state: RunState) -> None:
        instructions = state.agent.instructions
        current = state.session.system_message
        if not instructions:
            # The previous agent's prompt must not carry over
            state.session.remove_system_message()
        elif current is None or current.content != instructions:
            state.session.set_system_message(instructions)

    @staticmethod
    def _patch_pending(state: RunState, reason: str) -> None:
        """Answer every outstanding tool call with a not-executed placeholder."""
        for call in state.session.pending_tool_calls():
            state.append(
                Message.tool(
                    call.id,
                    call.name,
                    _not_executed(reason),
                    metadata={"status": "error", "error_kind": "NotExecuted"},
                )
            )


__all__ = ["RunState", "Runner"]
