"""
Configuration for agentrun.

- AgentrunSettings: environment-driven settings for composition points
- ExecutionConfig: explicit runner configuration
"""

from agentrun.config.execution import ExecutionConfig
from agentrun.config.settings import AgentrunSettings, settings

__all__ = ["AgentrunSettings", "ExecutionConfig", "settings"]
