"""Tests for SessionStore (session table, slots, step pointer)."""
import pytest

from taskdesigner.core.enums import MessageRole, SlotName, StepEnum
from taskdesigner.core.models import FocusTopic, TaskIdea
from taskdesigner.exceptions import (
    DuplicateSessionError,
    InvalidTransitionError,
    MissingPrerequisiteError,
    SessionNotFoundError,
)
from taskdesigner.services.session_store import SessionStore


def _idea(i: int) -> TaskIdea:
    return TaskIdea(
        id=i, title=f"Idea {i}", description="d", role="r", audience="a", purpose="p"
    )


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


# ---------------------------------------------------------------------------
# Session table
# ---------------------------------------------------------------------------

class TestSessionTable:
    def test_create_and_get(self, store):
        session = store.create_session("s1", "Space Exploration")
        assert store.get_session("s1") is session
        assert session.unit.topic == "Space Exploration"
        assert session.current_step == StepEnum.TASK_IDEAS
        assert "s1" in store
        assert len(store) == 1

    def test_duplicate_id_rejected(self, store):
        store.create_session("s1", "Space")
        with pytest.raises(DuplicateSessionError):
            store.create_session("s1", "Oceans")
        assert store.get_session("s1").unit.topic == "Space"

    def test_unknown_id(self, store):
        with pytest.raises(SessionNotFoundError) as exc:
            store.get_session("missing")
        assert exc.value.details == {"session_id": "missing"}

    def test_delete_frees_id(self, store):
        store.create_session("s1", "Space")
        store.delete_session("s1")
        assert "s1" not in store
        store.create_session("s1", "Oceans")
        assert store.session_ids() == ["s1"]

    def test_delete_unknown(self, store):
        with pytest.raises(SessionNotFoundError):
            store.delete_session("nope")

    def test_each_session_has_own_lock(self, store):
        a = store.create_session("a", "x")
        b = store.create_session("b", "y")
        assert store.lock(a) is not store.lock(b)
        assert store.lock(a) is store.lock(a)


# ---------------------------------------------------------------------------
# Unit record
# ---------------------------------------------------------------------------

class TestUnitRecord:
    def test_init_unit_once(self, store):
        session = store.create_session("s1", "Space")
        store.init_unit(session, "Mars Missions", "6th")
        assert session.unit.unit_title == "Mars Missions"
        assert session.unit.grade_label == "6th"
        with pytest.raises(ValueError):
            store.init_unit(session, "Other", "7th")
        assert session.unit.unit_title == "Mars Missions"

    def test_unset_slots_read_as_none(self, store):
        session = store.create_session("s1", "Space")
        assert store.get(session, SlotName.CANDIDATE_TASK_IDEAS) is None
        assert store.get(session, SlotName.SELECTED_FOCUS_TOPICS) is None
        assert store.get(session, SlotName.REQUIREMENTS_TEXT) is None

    def test_selection_requires_candidates(self, store):
        session = store.create_session("s1", "Space")
        with pytest.raises(MissingPrerequisiteError):
            store.set(session, SlotName.SELECTED_TASK_IDEA, _idea(1))

    def test_selection_after_candidates(self, store):
        session = store.create_session("s1", "Space")
        store.set(session, SlotName.CANDIDATE_TASK_IDEAS, [_idea(1), _idea(2)])
        store.set(session, SlotName.SELECTED_TASK_IDEA, _idea(2))
        assert store.get(session, SlotName.SELECTED_TASK_IDEA).id == 2

    def test_candidates_replaced_wholesale(self, store):
        session = store.create_session("s1", "Space")
        store.set(session, SlotName.CANDIDATE_TASK_IDEAS, [_idea(1), _idea(2), _idea(3)])
        store.set(session, SlotName.CANDIDATE_TASK_IDEAS, [_idea(7)])
        assert [i.id for i in store.get(session, SlotName.CANDIDATE_TASK_IDEAS)] == [7]

    def test_slot_type_is_validated(self, store):
        session = store.create_session("s1", "Space")
        with pytest.raises(ValueError):
            store.set(session, SlotName.CANDIDATE_FOCUS_TOPICS, [{"id": "x"}])
        store.set(
            session,
            SlotName.CANDIDATE_FOCUS_TOPICS,
            [FocusTopic(id=1, topic="Rovers", description="d")],
        )

    def test_transcript_is_append_only_order(self, store):
        session = store.create_session("s1", "Space")
        store.append_message(session, MessageRole.USER, "hello")
        store.append_message(session, "assistant", "hi")
        assert [(m.role, m.content) for m in session.transcript] == [
            (MessageRole.USER, "hello"),
            (MessageRole.ASSISTANT, "hi"),
        ]


# ---------------------------------------------------------------------------
# Step pointer
# ---------------------------------------------------------------------------

class TestAdvanceStep:
    def test_forward_one_step(self, store):
        session = store.create_session("s1", "Space")
        store.advance_step(session, StepEnum.FOCUS_TOPICS)
        assert session.current_step == StepEnum.FOCUS_TOPICS

    def test_same_step_is_noop(self, store):
        session = store.create_session("s1", "Space")
        store.advance_step(session, StepEnum.TASK_IDEAS)
        assert session.current_step == StepEnum.TASK_IDEAS

    def test_backward_rejected(self, store):
        session = store.create_session("s1", "Space")
        store.advance_step(session, StepEnum.FOCUS_TOPICS)
        with pytest.raises(InvalidTransitionError):
            store.advance_step(session, StepEnum.TASK_IDEAS)
        assert session.current_step == StepEnum.FOCUS_TOPICS

    def test_skip_rejected(self, store):
        session = store.create_session("s1", "Space")
        with pytest.raises(InvalidTransitionError) as exc:
            store.advance_step(session, StepEnum.PRODUCT_OPTIONS)
        assert exc.value.details["requested_step"] == "product_options"
        assert session.current_step == StepEnum.TASK_IDEAS
