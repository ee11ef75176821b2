"""
Session routes: send a message, inspect and delete sessions.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from agentrun.api.deps import get_runner, resolve_agent
from agentrun.api.schemas import (
    MessageRequest,
    RunResponse,
    SessionListResponse,
    SessionResponse,
)
from agentrun.domain import SessionLocked
from agentrun.runtime import Runner
from agentrun.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/sessions")


@router.get("", response_model=SessionListResponse)
async def list_sessions(runner: Runner = Depends(get_runner)):
    ids = await runner.store.list_ids()
    return SessionListResponse(items=ids, total=len(ids))


@router.post("/{session_id}/messages", response_model=RunResponse)
async def post_message(
    session_id: str,
    body: MessageRequest,
    request: Request,
    runner: Runner = Depends(get_runner),
):
    """
    Run the agent on one user message.

    Run failures come back as 200 with ``success=false``; a run already in
    progress on the session is a 409.
    """
    agent = resolve_agent(request, body.agent)
    result = await runner.run(
        session_id,
        body.message,
        agent,
        body.max_turns,
        context=body.context,
    )
    response = RunResponse.from_result(result)
    if result.error is not None and result.error.kind == SessionLocked.kind:
        return JSONResponse(status_code=409, content=response.model_dump(mode="json"))
    return response


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, runner: Runner = Depends(get_runner)):
    session = await runner.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return SessionResponse.from_session(session)


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str, runner: Runner = Depends(get_runner)):
    try:
        await runner.clear_session(session_id)
    except SessionLocked as e:
        raise HTTPException(status_code=409, detail=e.message)
    return Response(status_code=204)
