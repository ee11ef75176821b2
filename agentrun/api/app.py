"""
FastAPI application for the agentrun HTTP wrapper.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentrun import __version__
from agentrun.agent import AgentCatalog, AgentSpec
from agentrun.runtime import Runner
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    logger.info(
        "agentrun_api_starting",
        agents=app.state.agents.names(),
        default_agent=app.state.default_agent,
    )
    yield
    if app.state.owns_runner:
        await app.state.runner.close()
    logger.info("agentrun_api_shutdown")


def create_app(
    runner: Runner | None = None,
    agents: AgentCatalog | list[AgentSpec] | None = None,
    default_agent: str | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        runner: Runner to serve; built from AgentrunSettings when omitted
        agents: Agents addressable by name; defaults to the runner's catalog.
            Every agent given here must be registered with the runner
        default_agent: Agent used when a request names none; defaults to the
            first agent in the catalog

    Returns:
        Configured FastAPI application
    """
    owns_runner = runner is None
    if runner is None:
        from agentrun.api.setup import build_default_agent, build_runner
        from agentrun.config import AgentrunSettings

        settings = AgentrunSettings()
        agent = build_default_agent(settings)
        catalog = AgentCatalog([agent])
        runner = build_runner(settings, catalog)
    elif agents is None:
        catalog = runner.agents
    else:
        catalog = agents if isinstance(agents, AgentCatalog) else AgentCatalog(agents)
        # Routes and hand-offs must resolve names to the same AgentSpec
        foreign = [a.name for a in catalog if runner.agents.get(a.name) is not a]
        if foreign:
            raise ValueError(f"Agents not registered with the runner: {', '.join(foreign)}")

    if default_agent is None and len(catalog):
        default_agent = catalog.names()[0]
    if default_agent is not None and default_agent not in catalog:
        raise ValueError(f"Default agent {default_agent!r} is not in the catalog")

    from agentrun.api.routes import health, sessions

    app = FastAPI(
        title="agentrun API",
        description="Run agents against persistent sessions.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.runner = runner
    app.state.agents = catalog
    app.state.default_agent = default_agent
    app.state.owns_runner = owns_runner

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(sessions.router)

    return app


__all__ = ["create_app", "lifespan"]
