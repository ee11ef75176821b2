"""
Shared fixtures: a scripted provider and a deterministic token estimator.
"""

import asyncio
from typing import Any

import pytest

from agentrun.agent import AgentCatalog, AgentSpec
from agentrun.config import ExecutionConfig
from agentrun.domain import Message, ToolCall, Usage
from agentrun.memory import MemoryManager, TokenEstimator
from agentrun.providers.llm.base import (
    GenerationParams,
    ModelProvider,
    TextResponse,
    ToolCallsResponse,
)
from agentrun.providers.storage import InMemorySessionStore
from agentrun.runtime import Runner


class FlatEstimator(TokenEstimator):
    """Every message costs the same number of tokens."""

    def __init__(self, per_message: int = 10):
        self.encoding_name = "flat"
        self.encoding = None
        self.per_message = per_message

    def count_message(self, message: Message) -> int:
        return self.per_message


class ScriptedProvider(ModelProvider):
    """
    Replays a fixed list of responses.

    Items may be a response, an exception (raised), or a callable taking the
    context messages and returning either. The last item repeats once the
    script runs out.
    """

    name: str = "scripted"
    script: list[Any] = []
    calls: list[list[Message]] = []
    params: list[GenerationParams] = []
    delay: float = 0.0

    async def complete(self, messages, params):
        self.calls.append(list(messages))
        self.params.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        index = min(len(self.calls) - 1, len(self.script) - 1)
        item = self.script[index]
        if callable(item) and not isinstance(item, BaseException):
            item = item(messages)
        if isinstance(item, BaseException):
            raise item
        return item


def text(content: str, tokens: int = 5) -> TextResponse:
    return TextResponse(
        content=content,
        usage=Usage(prompt_tokens=tokens, completion_tokens=tokens, total_tokens=2 * tokens),
    )


def tool_calls(*calls: tuple[str, dict] | ToolCall, tokens: int = 5) -> ToolCallsResponse:
    built = [c if isinstance(c, ToolCall) else ToolCall(name=c[0], arguments=c[1]) for c in calls]
    return ToolCallsResponse(
        calls=built,
        usage=Usage(prompt_tokens=tokens, completion_tokens=tokens, total_tokens=2 * tokens),
    )


@pytest.fixture
def estimator():
    return FlatEstimator()


@pytest.fixture
def fast_config():
    return ExecutionConfig(
        max_turns=10,
        context_budget_tokens=10_000,
        retry_max_attempts=3,
        retry_min_wait=0.0,
        retry_max_wait=0.0,
    )


@pytest.fixture
def assistant():
    return AgentSpec(name="assistant", instructions="You are a helpful assistant.")


@pytest.fixture
def make_runner(fast_config):
    """Build a Runner around a ScriptedProvider."""

    def _make(script, agents=(), config=None, store=None, **provider_kwargs):
        provider = ScriptedProvider(script=list(script), calls=[], params=[], **provider_kwargs)
        runner = Runner(
            provider=provider,
            store=store or InMemorySessionStore(),
            memory=MemoryManager(estimator=FlatEstimator()),
            config=config or fast_config,
            agents=AgentCatalog(agents),
        )
        return runner, provider

    return _make
