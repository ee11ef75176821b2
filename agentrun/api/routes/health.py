"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from agentrun import __version__
from agentrun.agent import AgentCatalog
from agentrun.api.deps import get_agents

router = APIRouter(prefix="/health")


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    agents: list[str]


@router.get("", response_model=HealthResponse)
async def health_check(agents: AgentCatalog = Depends(get_agents)):
    """Basic health check."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc).isoformat(),
        agents=agents.names(),
    )
