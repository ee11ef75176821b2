"""
Runtime execution configuration.
"""

from pydantic import BaseModel, Field


class ExecutionConfig(BaseModel):
    """
    Knobs for one Runner instance.

    Passed explicitly into Runner construction; the run loop never consults
    process-wide settings.
    """

    # Loop configuration
    max_turns: int = Field(default=10, ge=1, description="Maximum provider calls per run")

    # Context configuration
    context_budget_tokens: int = Field(
        default=8000, ge=1, description="Token budget for the context sent to the provider"
    )

    # Concurrency configuration
    max_parallel_tools: int = Field(
        default=4, ge=1, description="Maximum tool calls dispatched concurrently within one turn"
    )

    # Timeout configuration
    provider_timeout: float | None = Field(
        default=60.0, gt=0, description="Timeout per provider call (seconds)"
    )
    tool_timeout: float | None = Field(
        default=30.0, gt=0, description="Default timeout per tool invocation (seconds)"
    )
    run_deadline: float | None = Field(
        default=None, gt=0, description="Overall deadline for one run (seconds)"
    )

    # Retry configuration
    retry_max_attempts: int = Field(default=3, ge=1, description="Attempts per provider call")
    retry_min_wait: float = Field(default=1.0, ge=0.0, description="Minimum backoff (seconds)")
    retry_max_wait: float = Field(default=10.0, ge=0.0, description="Maximum backoff (seconds)")


__all__ = ["ExecutionConfig"]
