"""
Session API endpoints.
"""

import secrets

from fastapi import APIRouter, Depends, HTTPException, Response, status

from taskdesigner.api.dependencies import get_service
from taskdesigner.exceptions import DuplicateSessionError, SessionNotFoundError
from taskdesigner.logging_config import get_logger
from taskdesigner.schemas.schemas import (
    ErrorResponse,
    MessageRequest,
    MessageResponse,
    SessionCreateRequest,
    SessionCreateResponse,
    SessionStateResponse,
)
from taskdesigner.services.orchestrator import PerformanceTaskService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/session", tags=["session"])


def _generate_session_id() -> str:
    return secrets.token_urlsafe(16)


@router.post(
    "/create",
    response_model=SessionCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Session id already in use"},
    }
)
async def create_session(
    data: SessionCreateRequest,
    service: PerformanceTaskService = Depends(get_service),
):
    """
    Create a new performance task session.

    Returns the session id and the greeting message.
    """
    session_id = data.session_id or _generate_session_id()
    logger.info(
        "create_session_request",
        session_id=session_id,
        unit_title=data.unit_title,
        grade_label=data.grade_label,
    )

    try:
        greeting = service.initialize_session(
            session_id=session_id,
            topic=data.topic,
            unit_title=data.unit_title,
            grade_label=data.grade_label,
        )
    except DuplicateSessionError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Session already exists"
        )

    state = service.get_state(session_id)
    return SessionCreateResponse(
        session_id=session_id,
        message=greeting,
        current_step=state.unit.current_step,
    )


@router.post(
    "/{session_id}/message",
    response_model=MessageResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
    }
)
async def send_message(
    session_id: str,
    data: MessageRequest,
    service: PerformanceTaskService = Depends(get_service),
):
    """
    Submit a chat message for the current step.

    The performance task summary is included once the final step is reached.
    """
    try:
        result = await service.submit_message(session_id, data.message)
    except SessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found. Please create a new session with a topic, unit title and grade."
        )

    return MessageResponse(
        session_id=session_id,
        message=result.response_text,
        current_step=result.current_step,
        performance_task=result.final_summary,
    )


@router.get(
    "/{session_id}/state",
    response_model=SessionStateResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
    }
)
async def get_session_state(
    session_id: str,
    service: PerformanceTaskService = Depends(get_service),
):
    """Get a read-only snapshot of the unit state and transcript."""
    try:
        snapshot = service.get_state(session_id)
    except SessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )

    return SessionStateResponse(
        session_id=snapshot.session_id,
        unit=snapshot.unit,
        transcript=snapshot.transcript,
    )


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
    }
)
async def delete_session(
    session_id: str,
    service: PerformanceTaskService = Depends(get_service),
):
    """Remove a session so the id can be reused."""
    try:
        service.reset_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
