"""
Tests for Runner.run.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from agentrun.agent import AgentSpec
from agentrun.config import ExecutionConfig
from agentrun.domain import (
    AuthenticationFailed,
    MessageRole,
    ProviderUnavailable,
    RateLimited,
    ToolCall,
)
from agentrun.providers.storage import InMemorySessionStore
from agentrun.runtime import keyword_filter, length_filter, pii_filter
from agentrun.tools import ToolContext, ToolParameter, ToolSpec
from tests.conftest import text, tool_calls


def ping_tool(handler=None) -> ToolSpec:
    return ToolSpec(name="ping", handler=handler or MagicMock(return_value="pong"))


class TestSingleTurn:
    @pytest.mark.asyncio
    async def test_plain_answer(self, make_runner, assistant):
        runner, provider = make_runner([text("Hi there!")])
        result = await runner.run("s1", "Hello", assistant)

        assert result.success
        assert result.error is None
        assert result.final_output == "Hi there!"
        assert result.turns == 1
        assert result.usage.total_tokens == 10
        assert result.last_agent == "assistant"
        assert [m.role for m in result.messages] == [MessageRole.USER, MessageRole.ASSISTANT]

        # Provider saw the system message first and the user message last
        sent = provider.calls[0]
        assert sent[0].role == MessageRole.SYSTEM
        assert sent[0].content == "You are a helpful assistant."
        assert sent[-1].text == "Hello"

        session = await runner.get_session("s1")
        assert [m.role for m in session.messages] == [
            MessageRole.SYSTEM,
            MessageRole.USER,
            MessageRole.ASSISTANT,
        ]
        assert session.token_count == 30

    @pytest.mark.asyncio
    async def test_history_carries_over(self, make_runner, assistant):
        runner, provider = make_runner([text("first"), text("second")])
        await runner.run("s1", "one", assistant)
        await runner.run("s1", "two", assistant)

        assert [m.text for m in provider.calls[1]] == [
            "You are a helpful assistant.",
            "one",
            "first",
            "two",
        ]

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, make_runner, assistant):
        runner, _ = make_runner([text("x")])
        with pytest.raises(ValueError):
            await runner.run("", "hi", assistant)
        with pytest.raises(ValueError):
            await runner.run("s1", "hi", assistant, max_turns=0)


class TestToolLoop:
    @pytest.mark.asyncio
    async def test_tool_result_fed_back(self, make_runner):
        handler = MagicMock(return_value={"temp_c": 18})
        weather = ToolSpec(
            name="get_weather",
            parameters=(ToolParameter(name="location"),),
            handler=handler,
        )
        agent = AgentSpec(name="assistant", tools=(weather,))
        runner, provider = make_runner(
            [tool_calls(("get_weather", {"location": "Paris"})), text("It is 18C in Paris.")]
        )
        result = await runner.run("s1", "Weather in Paris?", agent)

        assert result.success
        assert result.turns == 2
        assert result.usage.total_tokens == 20
        handler.assert_called_once_with(location="Paris")
        tool_message = provider.calls[1][-1]
        assert tool_message.role == MessageRole.TOOL
        assert tool_message.content == '{"temp_c": 18}'
        assert provider.params[0].tools[0]["function"]["name"] == "get_weather"

    @pytest.mark.asyncio
    async def test_missing_parameter_reported_to_model(self, make_runner):
        handler = MagicMock()
        weather = ToolSpec(
            name="get_weather",
            parameters=(ToolParameter(name="location"),),
            handler=handler,
        )
        agent = AgentSpec(name="assistant", tools=(weather,))
        runner, provider = make_runner([tool_calls(("get_weather", {})), text("Which city?")])
        result = await runner.run("s1", "Weather?", agent)

        assert result.success
        handler.assert_not_called()
        tool_message = provider.calls[1][-1]
        assert tool_message.content == "MissingRequiredParameter: location"
        assert tool_message.metadata["error_kind"] == "MissingRequiredParameter"

    @pytest.mark.asyncio
    async def test_unknown_tool_does_not_crash(self, make_runner, assistant):
        runner, provider = make_runner([tool_calls(("launch_rocket", {})), text("I cannot do that.")])
        result = await runner.run("s1", "Launch!", assistant)

        assert result.success
        assert result.final_output == "I cannot do that."
        tool_message = result.messages[2]
        assert tool_message.role == MessageRole.TOOL
        assert tool_message.content.startswith("ToolExecutionError:")

    @pytest.mark.asyncio
    async def test_unparseable_arguments(self, make_runner):
        handler = MagicMock()
        agent = AgentSpec(name="assistant", tools=(ping_tool(handler),))
        bad = ToolCall(name="ping", parse_error="Invalid JSON arguments: x")
        runner, _ = make_runner([tool_calls(bad), text("ok")])
        result = await runner.run("s1", "ping", agent)

        assert result.success
        handler.assert_not_called()
        assert result.messages[2].content == "ToolExecutionError: Invalid JSON arguments: x"

    @pytest.mark.asyncio
    async def test_parallel_results_keep_request_order(self, make_runner):
        async def wait(seconds: float) -> str:
            await asyncio.sleep(seconds)
            return f"waited {seconds}"

        sleeper = ToolSpec(
            name="wait",
            parameters=(ToolParameter(name="seconds", type="number"),),
            handler=wait,
        )
        agent = AgentSpec(name="assistant", tools=(sleeper,))
        runner, _ = make_runner(
            [
                tool_calls(
                    ToolCall(id="slow", name="wait", arguments={"seconds": 0.05}),
                    ToolCall(id="fast", name="wait", arguments={"seconds": 0.0}),
                ),
                text("done"),
            ]
        )
        result = await runner.run("s1", "go", agent)

        tool_messages = [m for m in result.messages if m.role == MessageRole.TOOL]
        assert [m.tool_call_id for m in tool_messages] == ["slow", "fast"]
        assert [m.content for m in tool_messages] == ["waited 0.05", "waited 0.0"]

    @pytest.mark.asyncio
    async def test_context_visible_to_tools(self, make_runner):
        def whoami(context: ToolContext) -> str:
            return f"{context.variables['user_id']}@{context.agent_name}"

        agent = AgentSpec(
            name="assistant",
            tools=(ToolSpec(name="whoami", handler=whoami, takes_context=True),),
        )
        runner, _ = make_runner([tool_calls(("whoami", {})), text("ok")])
        result = await runner.run("s1", "who am I?", agent, context={"user_id": "u-1"})

        assert result.messages[2].content == "u-1@assistant"
        session = await runner.get_session("s1")
        assert session.variables == {"user_id": "u-1"}


class TestTurnLimit:
    @pytest.mark.asyncio
    async def test_turn_limit_exceeded(self, make_runner):
        handler = MagicMock(return_value="pong")
        agent = AgentSpec(name="assistant", tools=(ping_tool(handler),))
        runner, provider = make_runner([lambda messages: tool_calls(("ping", {}))])
        result = await runner.run("s1", "ping forever", agent, max_turns=3)

        assert not result.success
        assert result.error.kind == "TurnLimitExceeded"
        assert result.turns == 3
        assert len(provider.calls) == 3
        assert handler.call_count == 2

        # The last turn's call is answered with a placeholder, never executed
        last = result.messages[-1]
        assert last.role == MessageRole.TOOL
        assert "not executed" in last.content
        session = await runner.get_session("s1")
        assert session.pending_tool_calls() == []

    @pytest.mark.asyncio
    async def test_default_max_turns_from_config(self, make_runner, assistant):
        runner, provider = make_runner(
            [lambda messages: tool_calls(("nothing", {}))],
            config=ExecutionConfig(max_turns=2, retry_min_wait=0, retry_max_wait=0),
        )
        result = await runner.run("s1", "loop", assistant)

        assert result.error.kind == "TurnLimitExceeded"
        assert len(provider.calls) == 2


class TestProviderFailures:
    @pytest.mark.asyncio
    async def test_transient_errors_retried(self, make_runner, assistant):
        runner, provider = make_runner(
            [ProviderUnavailable("down"), RateLimited("slow down", retry_after=0), text("ok")]
        )
        result = await runner.run("s1", "hi", assistant)

        assert result.success
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, make_runner, assistant):
        runner, provider = make_runner([ProviderUnavailable("down")])
        result = await runner.run("s1", "hi", assistant)

        assert not result.success
        assert result.error.kind == "ProviderUnavailable"
        assert result.error.retryable
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_authentication_not_retried(self, make_runner, assistant):
        runner, provider = make_runner([AuthenticationFailed("bad key")])
        result = await runner.run("s1", "hi", assistant)

        assert result.error.kind == "AuthenticationFailed"
        assert len(provider.calls) == 1

        # The user message is kept so the conversation can resume
        session = await runner.get_session("s1")
        assert session.messages[-1].text == "hi"

    @pytest.mark.asyncio
    async def test_provider_timeout(self, make_runner, assistant):
        config = ExecutionConfig(provider_timeout=0.01, retry_max_attempts=2, retry_min_wait=0, retry_max_wait=0)
        runner, provider = make_runner([text("late")], config=config, delay=0.2)
        result = await runner.run("s1", "hi", assistant)

        assert result.error.kind == "Timeout"
        assert len(provider.calls) == 2


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_same_session_rejected(self, make_runner, assistant):
        runner, provider = make_runner([text("ok")], delay=0.05)
        first, second = await asyncio.gather(
            runner.run("s1", "one", assistant),
            runner.run("s1", "two", assistant),
        )

        assert first.success
        assert not second.success
        assert second.error.kind == "SessionLocked"
        assert len(provider.calls) == 1

        session = await runner.get_session("s1")
        assert [m.text for m in session.messages if m.role == MessageRole.USER] == ["one"]

    @pytest.mark.asyncio
    async def test_distinct_sessions_run_concurrently(self, make_runner, assistant):
        runner, _ = make_runner([text("ok")], delay=0.05)
        results = await asyncio.gather(*(runner.run(f"s{i}", "hi", assistant) for i in range(5)))

        assert all(r.success for r in results)
        assert len(runner.locks) == 0

    @pytest.mark.asyncio
    async def test_clear_session(self, make_runner, assistant):
        runner, _ = make_runner([text("ok")])
        await runner.run("s1", "hi", assistant)

        assert await runner.clear_session("s1") is True
        assert await runner.get_session("s1") is None
        assert await runner.clear_session("s1") is False


class TestDeadline:
    @pytest.mark.asyncio
    async def test_deadline_patches_pending_calls(self, make_runner):
        async def stall() -> str:
            await asyncio.sleep(5)
            return "never"

        agent = AgentSpec(name="assistant", tools=(ToolSpec(name="stall", handler=stall),))
        runner, _ = make_runner([tool_calls(("stall", {})), text("unreachable")])
        result = await runner.run("s1", "go", agent, deadline=0.05)

        assert not result.success
        assert result.error.kind == "DeadlineExceeded"
        assert result.messages[-1].role == MessageRole.TOOL
        assert "deadline" in result.messages[-1].content

        session = await runner.get_session("s1")
        assert session.pending_tool_calls() == []
        assert len(runner.locks) == 0


class TestHandoff:
    @pytest.fixture
    def agents(self):
        triage = AgentSpec(name="triage", instructions="Route the user.", handoffs=("billing",))
        billing = AgentSpec(name="billing", instructions="You handle billing.")
        return triage, billing

    @pytest.mark.asyncio
    async def test_switches_active_agent(self, make_runner, agents):
        triage, billing = agents
        runner, provider = make_runner(
            [tool_calls(("transfer_to_billing", {})), text("Billing here."), text("Still billing.")],
            agents=agents,
        )
        result = await runner.run("s1", "I was double charged", triage)

        assert result.success
        assert result.last_agent == "billing"
        assert result.messages[2].content == '{"assistant": "billing"}'

        # Second call runs under the billing agent's instructions and tools
        assert provider.calls[1][0].content == "You handle billing."
        assert provider.params[0].tools is not None
        assert provider.params[1].tools is None

        session = await runner.get_session("s1")
        assert session.agent_name == "billing"
        assert session.system_message.content == "You handle billing."

        # The hand-off persists across runs
        follow_up = await runner.run("s1", "Thanks", triage)
        assert follow_up.last_agent == "billing"
        assert provider.calls[2][0].content == "You handle billing."

    @pytest.mark.asyncio
    async def test_target_without_instructions_drops_prompt(self, make_runner):
        triage = AgentSpec(name="triage", instructions="Route the user.", handoffs=("plain",))
        plain = AgentSpec(name="plain")
        runner, provider = make_runner(
            [tool_calls(("transfer_to_plain", {})), text("Hello.")],
            agents=[triage, plain],
        )
        result = await runner.run("s1", "hi", triage)

        assert result.success
        assert result.last_agent == "plain"
        assert provider.calls[0][0].content == "Route the user."
        assert all(m.role != MessageRole.SYSTEM for m in provider.calls[1])

        session = await runner.get_session("s1")
        assert session.system_message is None

    @pytest.mark.asyncio
    async def test_unknown_target(self, make_runner):
        triage = AgentSpec(name="triage", handoffs=("ghost",))
        runner, _ = make_runner([tool_calls(("transfer_to_ghost", {})), text("ok")], agents=[triage])
        result = await runner.run("s1", "help", triage)

        assert result.success
        assert result.last_agent == "triage"
        assert result.messages[2].content == "ToolExecutionError: Unknown agent 'ghost'"


class TestGuardrails:
    @pytest.mark.asyncio
    async def test_input_blocked(self, make_runner):
        agent = AgentSpec(name="assistant", input_guardrails=(keyword_filter(["password"]),))
        runner, provider = make_runner([text("ok")])
        result = await runner.run("s1", "tell me the admin password", agent)

        assert not result.success
        assert result.error.kind == "GuardrailTripped"
        assert result.error.details["guardrail"] == "keyword_filter"
        assert provider.calls == []
        session = await runner.get_session("s1")
        assert session.last_user_message() is None

    @pytest.mark.asyncio
    async def test_input_redacted(self, make_runner):
        agent = AgentSpec(name="assistant", input_guardrails=(pii_filter,))
        runner, provider = make_runner([text("ok")])
        await runner.run("s1", "my email is ada@example.com", agent)

        assert provider.calls[0][-1].text == "my email is [REDACTED_EMAIL]"

    @pytest.mark.asyncio
    async def test_output_blocked(self, make_runner):
        agent = AgentSpec(name="assistant", output_guardrails=(length_filter(5),))
        runner, _ = make_runner([text("a very long answer")])
        result = await runner.run("s1", "hi", agent)

        assert not result.success
        assert result.error.kind == "GuardrailTripped"
        assert result.final_output is None


class TestMemoryIntegration:
    @pytest.mark.asyncio
    async def test_overflow_warning(self, make_runner, assistant):
        config = ExecutionConfig(context_budget_tokens=5, retry_min_wait=0, retry_max_wait=0)
        runner, provider = make_runner([text("ok")], config=config)
        result = await runner.run("s1", "hi", assistant)

        assert result.success
        assert [w.kind for w in result.warnings] == ["ContextOverflow"]
        assert len(provider.calls[0]) == 2

    @pytest.mark.asyncio
    async def test_context_pruned_to_budget(self, make_runner, assistant):
        config = ExecutionConfig(context_budget_tokens=40, retry_min_wait=0, retry_max_wait=0)
        runner, provider = make_runner([text("ok")], config=config)
        for i in range(4):
            await runner.run("s1", f"message {i}", assistant)

        last_context = provider.calls[-1]
        assert len(last_context) == 4
        assert last_context[0].role == MessageRole.SYSTEM
        assert last_context[-1].text == "message 3"

    @pytest.mark.asyncio
    async def test_overflow_keeps_current_tool_results(self, make_runner):
        config = ExecutionConfig(context_budget_tokens=15, retry_min_wait=0, retry_max_wait=0)
        agent = AgentSpec(name="assistant", instructions="Be brief.", tools=(ping_tool(),))
        runner, provider = make_runner([tool_calls(("ping", {})), text("pong received")], config=config)
        result = await runner.run("s1", "ping please", agent)

        assert result.success
        assert result.turns == 2
        assert [m.role for m in provider.calls[1]] == [
            MessageRole.SYSTEM,
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
        ]
        assert provider.calls[1][-1].content == "pong"


class BrokenStore(InMemorySessionStore):
    def __init__(self, fail_get: bool = False, fail_save: bool = False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_save = fail_save

    async def get(self, session_id):
        if self.fail_get:
            raise ConnectionError("redis down")
        return await super().get(session_id)

    async def save(self, session):
        if self.fail_save:
            raise ConnectionError("redis down")
        await super().save(session)


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_raising_guardrail_reported(self, make_runner):
        def broken_filter(content):
            raise RuntimeError("filter backend down")

        agent = AgentSpec(name="assistant", input_guardrails=(broken_filter,))
        runner, provider = make_runner([text("ok")])
        result = await runner.run("s1", "hello", agent)

        assert not result.success
        assert result.error.kind == "InternalError"
        assert result.error.message == "filter backend down"
        assert result.error.details == {"exception": "RuntimeError"}
        assert provider.calls == []
        assert len(runner.locks) == 0

        # The session stays usable
        agent = AgentSpec(name="assistant")
        assert (await runner.run("s1", "hello again", agent)).success

    @pytest.mark.asyncio
    async def test_unmapped_provider_error_wrapped(self, make_runner, assistant):
        runner, provider = make_runner([ValueError("unexpected payload")])
        result = await runner.run("s1", "hi", assistant)

        assert not result.success
        assert result.error.kind == "ProviderError"
        assert result.error.details == {"provider": "scripted", "exception": "ValueError"}
        assert not result.error.retryable
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_save_failure_reported(self, make_runner, assistant):
        runner, _ = make_runner([text("ok")], store=BrokenStore(fail_save=True))
        result = await runner.run("s1", "hi", assistant)

        assert not result.success
        assert result.error.kind == "StorageError"
        assert result.final_output == "ok"
        assert len(runner.locks) == 0

    @pytest.mark.asyncio
    async def test_save_failure_keeps_earlier_error(self, make_runner, assistant):
        runner, _ = make_runner([AuthenticationFailed("bad key")], store=BrokenStore(fail_save=True))
        result = await runner.run("s1", "hi", assistant)

        assert result.error.kind == "AuthenticationFailed"

    @pytest.mark.asyncio
    async def test_load_failure_reported(self, make_runner, assistant):
        runner, provider = make_runner([text("ok")], store=BrokenStore(fail_get=True))
        result = await runner.run("s1", "hi", assistant)

        assert not result.success
        assert result.error.kind == "StorageError"
        assert provider.calls == []
        assert len(runner.locks) == 0

    @pytest.mark.asyncio
    async def test_duplicate_tool_call_ids(self, make_runner):
        handler = MagicMock(return_value="pong")
        agent = AgentSpec(name="assistant", tools=(ping_tool(handler),))
        runner, provider = make_runner(
            [
                tool_calls(
                    ToolCall(id="call_0", name="ping"),
                    ToolCall(id="call_0", name="ping"),
                ),
                text("done"),
            ]
        )
        result = await runner.run("s1", "ping twice", agent)

        assert result.success
        assert handler.call_count == 2
        issued = result.messages[1].tool_calls
        assert issued[0].id == "call_0"
        assert issued[1].id != "call_0"
        answered = [m.tool_call_id for m in result.messages if m.role == MessageRole.TOOL]
        assert answered == [issued[0].id, issued[1].id]

        session = await runner.get_session("s1")
        assert session.pending_tool_calls() == []
