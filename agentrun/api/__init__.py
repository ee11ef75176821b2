"""
agentrun HTTP API.

Usage:
    # Mode 1: Standalone server (runner built from AGENTRUN_* settings)
    from agentrun.api import start_server
    start_server(host="0.0.0.0", port=8900)

    # Mode 2: Serve your own runner and agents
    from agentrun.api import create_app
    app = create_app(runner, agents=[triage, billing], default_agent="triage")
"""

from .app import create_app


def start_server(
    host: str = "0.0.0.0",
    port: int = 8900,
    reload: bool = False,
    **kwargs,
):
    """Start the standalone API server.

    Args:
        host: Bind host
        port: Bind port
        reload: Enable auto-reload for development
        **kwargs: Additional uvicorn arguments
    """
    import uvicorn

    uvicorn.run(
        "agentrun.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
        **kwargs,
    )


__all__ = ["create_app", "start_server"]
