"""
Session store - in-memory session table, unit state and transcript.

One Session per id. The table is guarded by a thread lock that is only
held for dict access; each session carries its own asyncio lock which the
orchestrator holds for a whole turn.
"""

import asyncio
import threading
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from taskdesigner.core.enums import MessageRole, SlotName, StepEnum
from taskdesigner.core.models import ChatMessage, UnitState
from taskdesigner.core.steps import SELECTION_SOURCES, step_index
from taskdesigner.exceptions import (
    DuplicateSessionError,
    InvalidTransitionError,
    MissingPrerequisiteError,
    SessionNotFoundError,
)
from taskdesigner.logging_config import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_empty(value: Any) -> bool:
    """True for unset slots: None, empty string, empty list."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


class Session(BaseModel):
    """One conversation: unit record plus append-only transcript."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str
    unit: UnitState
    transcript: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    _lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def current_step(self) -> StepEnum:
        return self.unit.current_step

    def touch(self) -> None:
        self.updated_at = _utcnow()


class SessionStore:
    """Process-lifetime session table with slot and step accessors."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._table_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Table
    # ------------------------------------------------------------------

    def create_session(self, session_id: str, topic: str) -> Session:
        """
        Create a new session.

        Raises:
            DuplicateSessionError: If the id is already in the table
        """
        with self._table_lock:
            if session_id in self._sessions:
                raise DuplicateSessionError(session_id)
            session = Session(session_id=session_id, unit=UnitState(topic=topic))
            self._sessions[session_id] = session

        logger.info("session_created", session_id=session_id, topic=topic)
        return session

    def get_session(self, session_id: str) -> Session:
        """
        Look up a session.

        Raises:
            SessionNotFoundError: If no session has this id
        """
        with self._table_lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def delete_session(self, session_id: str) -> None:
        """Remove a session from the table."""
        with self._table_lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        logger.info("session_deleted", session_id=session_id, messages=len(session.transcript))

    def session_ids(self) -> list[str]:
        with self._table_lock:
            return list(self._sessions)

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._table_lock:
            return session_id in self._sessions

    @staticmethod
    def lock(session: Session) -> asyncio.Lock:
        """Per-session lock serialising turns."""
        return session._lock

    # ------------------------------------------------------------------
    # Unit record
    # ------------------------------------------------------------------

    @staticmethod
    def init_unit(session: Session, unit_title: str, grade_label: str) -> None:
        """Set the unit title and grade once; later calls are rejected."""
        unit = session.unit
        if unit.unit_title is not None or unit.grade_label is not None:
            raise ValueError(f"Unit info already set for session {session.session_id}")
        unit.unit_title = unit_title
        unit.grade_label = grade_label
        unit.current_step = StepEnum.TASK_IDEAS
        session.touch()

    @staticmethod
    def get(session: Session, slot: SlotName) -> Any:
        """Read a named slot; unset slots come back as None."""
        value = getattr(session.unit, SlotName(slot).value)
        return None if is_empty(value) else value

    @staticmethod
    def set(session: Session, slot: SlotName, value: Any) -> None:
        """
        Write a named slot.

        Raises:
            MissingPrerequisiteError: If a selection is written before its
                candidate set exists
        """
        slot = SlotName(slot)
        source = SELECTION_SOURCES.get(slot)
        if source is not None and is_empty(getattr(session.unit, source.value)):
            raise MissingPrerequisiteError(session.unit.current_step.value, source.value)

        setattr(session.unit, slot.value, value)
        session.touch()

    @staticmethod
    def append_message(session: Session, role: MessageRole, content: str) -> ChatMessage:
        message = ChatMessage(role=MessageRole(role), content=content)
        session.transcript.append(message)
        session.touch()
        return message

    @staticmethod
    def advance_step(session: Session, new_step: StepEnum) -> None:
        """
        Move the step pointer forward by exactly one step (or keep it).

        Raises:
            InvalidTransitionError: On a backward move or a skipped step
        """
        new_step = StepEnum(new_step)
        current = session.unit.current_step
        delta = step_index(new_step) - step_index(current)
        if delta == 0:
            return
        if delta != 1:
            raise InvalidTransitionError(session.session_id, current.value, new_step.value)

        session.unit.current_step = new_step
        session.touch()
        logger.info(
            "step_advanced",
            session_id=session.session_id,
            from_step=current.value,
            to_step=new_step.value,
        )
