"""Core domain types and the step table."""

from .enums import StepEnum, MessageRole, SlotName
from .models import (
    TaskIdea,
    TaskIdeas,
    FocusTopic,
    FocusTopics,
    ProductOption,
    ProductOptions,
    RubricCriterion,
    PerformanceTask,
    ClassifierDecision,
    UnitState,
    ChatMessage,
)
from .steps import StepDescriptor, STEP_TABLE, STEP_ORDER, get_descriptor, step_index

__all__ = [
    "StepEnum",
    "MessageRole",
    "SlotName",
    "TaskIdea",
    "TaskIdeas",
    "FocusTopic",
    "FocusTopics",
    "ProductOption",
    "ProductOptions",
    "RubricCriterion",
    "PerformanceTask",
    "ClassifierDecision",
    "UnitState",
    "ChatMessage",
    "StepDescriptor",
    "STEP_TABLE",
    "STEP_ORDER",
    "get_descriptor",
    "step_index",
]
