"""
Request and response models for the HTTP API.
"""

from typing import Any

from pydantic import BaseModel, Field

from agentrun.domain import ErrorInfo, Message, RunResult, Session, Usage


class MessageRequest(BaseModel):
    message: str | list[dict[str, Any]]
    context: dict[str, Any] | None = None
    # Entry agent name; the server default is used when omitted
    agent: str | None = None
    max_turns: int | None = Field(default=None, ge=1)


class RunResponse(BaseModel):
    response: str | None
    usage: Usage
    success: bool
    agent: str | None = None
    run_id: str | None = None
    turns: int = 0
    error: ErrorInfo | None = None
    warnings: list[ErrorInfo] = Field(default_factory=list)
    output: dict[str, Any] | None = None

    @classmethod
    def from_result(cls, result: RunResult) -> "RunResponse":
        return cls(
            response=result.final_output,
            usage=result.usage,
            success=result.success,
            agent=result.last_agent,
            run_id=result.run_id,
            turns=result.turns,
            error=result.error,
            warnings=result.warnings,
            output=result.structured_output,
        )


class SessionResponse(BaseModel):
    session_id: str
    agent: str | None
    token_count: int
    messages: list[Message]
    created_at: str
    updated_at: str

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        return cls(
            session_id=session.id,
            agent=session.agent_name,
            token_count=session.token_count,
            messages=session.messages,
            created_at=session.created_at.isoformat(),
            updated_at=session.updated_at.isoformat(),
        )


class SessionListResponse(BaseModel):
    items: list[str]
    total: int


__all__ = ["MessageRequest", "RunResponse", "SessionListResponse", "SessionResponse"]
