"""Enumerations for the performance task workflow."""

from enum import Enum


class StepEnum(str, Enum):
    """Workflow steps, in order."""
    TASK_IDEAS = "task_ideas"
    FOCUS_TOPICS = "focus_topics"
    PRODUCT_OPTIONS = "product_options"
    REQUIREMENTS = "requirements"
    RUBRIC = "rubric"
    COMPLETE = "performance_task_complete"


class MessageRole(str, Enum):
    """Transcript speaker."""
    USER = "user"
    ASSISTANT = "assistant"


class SlotName(str, Enum):
    """Named slots of the unit record."""
    CANDIDATE_TASK_IDEAS = "candidate_task_ideas"
    SELECTED_TASK_IDEA = "selected_task_idea"
    CANDIDATE_FOCUS_TOPICS = "candidate_focus_topics"
    SELECTED_FOCUS_TOPICS = "selected_focus_topics"
    CANDIDATE_PRODUCT_OPTIONS = "candidate_product_options"
    SELECTED_PRODUCT_OPTIONS = "selected_product_options"
    REQUIREMENTS_TEXT = "requirements_text"
    RUBRIC_TEXT = "rubric_text"
    FINAL_SUMMARY = "final_summary"
