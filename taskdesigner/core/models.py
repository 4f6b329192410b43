"""Core Pydantic models for the performance task workflow."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import MessageRole, StepEnum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_unique_ids(items: list) -> list:
    if not items:
        raise ValueError("candidate list must not be empty")
    ids = [item.id for item in items]
    if len(ids) != len(set(ids)):
        raise ValueError(f"candidate ids must be unique, got {ids}")
    return items


# ── Candidates ─────────────────────────────────────────────────────────────

class TaskIdea(BaseModel):
    """Performance task idea built around a real-world role."""
    id: int
    title: str
    description: str
    role: str
    audience: str
    purpose: str


class TaskIdeas(BaseModel):
    ideas: List[TaskIdea]

    @field_validator("ideas")
    @classmethod
    def _unique(cls, v: List[TaskIdea]) -> List[TaskIdea]:
        return _check_unique_ids(v)


class FocusTopic(BaseModel):
    id: int
    topic: str
    description: str


class FocusTopics(BaseModel):
    topics: List[FocusTopic]

    @field_validator("topics")
    @classmethod
    def _unique(cls, v: List[FocusTopic]) -> List[FocusTopic]:
        return _check_unique_ids(v)


class ProductOption(BaseModel):
    id: int
    title: str
    description: str


class ProductOptions(BaseModel):
    options: List[ProductOption]

    @field_validator("options")
    @classmethod
    def _unique(cls, v: List[ProductOption]) -> List[ProductOption]:
        return _check_unique_ids(v)


# ── Summary ────────────────────────────────────────────────────────────────

class RubricCriterion(BaseModel):
    """One rubric level (Try, Relevant, Accurate, Complex)."""
    name: str
    description: str = ""
    order_number: int = 1


def _placeholder_criteria() -> List[RubricCriterion]:
    return [RubricCriterion(name="Try", description="", order_number=1)]


class PerformanceTask(BaseModel):
    """Final performance task summary."""
    title: str = ""
    subtitle: str = ""
    description: str = ""
    purpose: str = ""
    requirements: str = ""
    success_criteria: str = ""
    suggested_focus_topics: str = ""
    rubric_title: str = ""
    rubric_description: str = ""
    rubric_criteria: List[RubricCriterion] = Field(default_factory=_placeholder_criteria)

    @field_validator("rubric_criteria")
    @classmethod
    def _non_empty(cls, v: List[RubricCriterion]) -> List[RubricCriterion]:
        return sorted(v, key=lambda c: c.order_number) if v else _placeholder_criteria()


# ── Classification ─────────────────────────────────────────────────────────

class ClassifierDecision(BaseModel):
    """Structured reply expected from the model-based step classifier."""
    ready_to_advance: bool
    selected_ids: List[int] = Field(default_factory=list)
    rationale: str = ""


# ── Session state ──────────────────────────────────────────────────────────

class ChatMessage(BaseModel):
    """One transcript entry."""
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    created_at: datetime = Field(default_factory=_utcnow)


class UnitState(BaseModel):
    """Unit record: fixed unit info, current step and the named slots."""
    model_config = ConfigDict(validate_assignment=True)

    topic: str
    unit_title: Optional[str] = None
    grade_label: Optional[str] = None
    current_step: StepEnum = StepEnum.TASK_IDEAS

    candidate_task_ideas: List[TaskIdea] = Field(default_factory=list)
    selected_task_idea: Optional[TaskIdea] = None
    candidate_focus_topics: List[FocusTopic] = Field(default_factory=list)
    selected_focus_topics: List[FocusTopic] = Field(default_factory=list)
    candidate_product_options: List[ProductOption] = Field(default_factory=list)
    selected_product_options: List[ProductOption] = Field(default_factory=list)
    requirements_text: Optional[str] = None
    rubric_text: Optional[str] = None
    final_summary: Optional[PerformanceTask] = None
