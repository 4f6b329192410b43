"""
Pydantic schemas for API request/response validation.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from taskdesigner.core.enums import StepEnum
from taskdesigner.core.models import ChatMessage, PerformanceTask, UnitState


# === Session Schemas ===

class SessionCreateRequest(BaseModel):
    """Schema for creating a session."""
    session_id: str | None = Field(None, max_length=128, description="Caller-chosen session id (generated if omitted)")
    topic: str = Field(..., min_length=1, description="Unit topic")
    unit_title: str = Field(..., min_length=1, description="Unit title")
    grade_label: str = Field(..., min_length=1, description="Grade, e.g. '6th'")


class SessionCreateResponse(BaseModel):
    """Response after creating a session."""
    session_id: str
    message: str
    current_step: StepEnum


class MessageRequest(BaseModel):
    """Schema for a chat message."""
    message: str = Field(..., description="User message text")


class MessageResponse(BaseModel):
    """Response to a chat message."""
    session_id: str
    message: str
    current_step: StepEnum
    performance_task: PerformanceTask | None = None


class SessionStateResponse(BaseModel):
    """Schema for session state."""
    session_id: str
    unit: UnitState
    transcript: list[ChatMessage]


# === Health Check ===

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    active_sessions: int
    timestamp: datetime


# === Error Responses ===

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    error_type: str | None = None
    details: dict[str, Any] | None = None
