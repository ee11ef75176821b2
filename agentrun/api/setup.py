"""
Composition from settings.

The only place besides the CLI that reads AgentrunSettings: it builds the
provider, store, runner and default agent used by the standalone server.
"""

from agentrun.agent import AgentCatalog, AgentSpec
from agentrun.config import AgentrunSettings, ExecutionConfig
from agentrun.providers.llm import AnthropicProvider, ModelProvider, OpenAIProvider
from agentrun.providers.storage import InMemorySessionStore, RedisSessionStore, SessionStore
from agentrun.runtime import Runner
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


def build_provider(settings: AgentrunSettings) -> ModelProvider:
    if settings.default_provider == "anthropic":
        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            base_url=settings.anthropic_base_url,
        )
    return OpenAIProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
    )


def build_store(settings: AgentrunSettings) -> SessionStore:
    if settings.redis_url:
        logger.info("session_store_selected", backend="redis")
        return RedisSessionStore(redis_url=settings.redis_url, ttl=settings.session_ttl)
    logger.info("session_store_selected", backend="memory")
    return InMemorySessionStore(ttl=settings.session_ttl)


def build_default_agent(settings: AgentrunSettings) -> AgentSpec:
    return AgentSpec(
        name=settings.default_agent_name,
        instructions=settings.default_instructions,
        model=settings.default_model,
    )


def build_runner(
    settings: AgentrunSettings,
    agents: AgentCatalog,
    config: ExecutionConfig | None = None,
) -> Runner:
    return Runner(
        provider=build_provider(settings),
        store=build_store(settings),
        config=config,
        agents=agents,
    )


__all__ = ["build_default_agent", "build_provider", "build_runner", "build_store"]
