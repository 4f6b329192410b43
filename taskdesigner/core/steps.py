"""Step table for the performance task workflow.

Single ordered table of step descriptors. Every component that needs to
know what a step reads, writes or allows looks it up here instead of
switching on the step tag.
"""

from dataclasses import dataclass
from typing import Optional, Type

from pydantic import BaseModel

from .enums import SlotName, StepEnum
from .models import FocusTopics, ProductOptions, TaskIdeas


@dataclass(frozen=True)
class StepDescriptor:
    """What a single step needs, produces and allows."""
    step: StepEnum
    title: str
    next_step: Optional[StepEnum]
    required_slots: tuple[SlotName, ...] = ()
    selectable: bool = False
    candidate_slot: Optional[SlotName] = None
    selected_slot: Optional[SlotName] = None
    output_slot: Optional[SlotName] = None
    response_shape: Optional[Type[BaseModel]] = None
    items_field: Optional[str] = None
    item_label: str = ""
    single_select: bool = False
    max_selection: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.next_step is None


STEP_TABLE: tuple[StepDescriptor, ...] = (
    StepDescriptor(
        step=StepEnum.TASK_IDEAS,
        title="Task Ideas",
        next_step=StepEnum.FOCUS_TOPICS,
        selectable=True,
        candidate_slot=SlotName.CANDIDATE_TASK_IDEAS,
        selected_slot=SlotName.SELECTED_TASK_IDEA,
        response_shape=TaskIdeas,
        items_field="ideas",
        item_label="Task",
        single_select=True,
        max_selection=1,
    ),
    StepDescriptor(
        step=StepEnum.FOCUS_TOPICS,
        title="Focus Topics",
        next_step=StepEnum.PRODUCT_OPTIONS,
        required_slots=(SlotName.SELECTED_TASK_IDEA,),
        selectable=True,
        candidate_slot=SlotName.CANDIDATE_FOCUS_TOPICS,
        selected_slot=SlotName.SELECTED_FOCUS_TOPICS,
        response_shape=FocusTopics,
        items_field="topics",
        item_label="Topic",
    ),
    StepDescriptor(
        step=StepEnum.PRODUCT_OPTIONS,
        title="Product Options",
        next_step=StepEnum.REQUIREMENTS,
        required_slots=(SlotName.SELECTED_TASK_IDEA, SlotName.SELECTED_FOCUS_TOPICS),
        selectable=True,
        candidate_slot=SlotName.CANDIDATE_PRODUCT_OPTIONS,
        selected_slot=SlotName.SELECTED_PRODUCT_OPTIONS,
        response_shape=ProductOptions,
        items_field="options",
        item_label="Option",
        max_selection=4,
    ),
    StepDescriptor(
        step=StepEnum.REQUIREMENTS,
        title="Requirements",
        next_step=StepEnum.RUBRIC,
        required_slots=(
            SlotName.SELECTED_TASK_IDEA,
            SlotName.SELECTED_FOCUS_TOPICS,
            SlotName.SELECTED_PRODUCT_OPTIONS,
        ),
        output_slot=SlotName.REQUIREMENTS_TEXT,
    ),
    StepDescriptor(
        step=StepEnum.RUBRIC,
        title="Rubric",
        next_step=StepEnum.COMPLETE,
        required_slots=(SlotName.SELECTED_TASK_IDEA, SlotName.REQUIREMENTS_TEXT),
        output_slot=SlotName.RUBRIC_TEXT,
    ),
    StepDescriptor(
        step=StepEnum.COMPLETE,
        title="Summary",
        next_step=None,
        required_slots=(SlotName.REQUIREMENTS_TEXT, SlotName.RUBRIC_TEXT),
        output_slot=SlotName.FINAL_SUMMARY,
    ),
)

STEP_ORDER: tuple[StepEnum, ...] = tuple(d.step for d in STEP_TABLE)

_BY_STEP: dict[StepEnum, StepDescriptor] = {d.step: d for d in STEP_TABLE}

# selected slot -> candidate slot it is chosen from
SELECTION_SOURCES: dict[SlotName, SlotName] = {
    d.selected_slot: d.candidate_slot for d in STEP_TABLE if d.selectable
}


def get_descriptor(step: StepEnum) -> StepDescriptor:
    """Return the descriptor for a step."""
    return _BY_STEP[StepEnum(step)]


def step_index(step: StepEnum) -> int:
    """Position of a step in the fixed ordering."""
    return STEP_ORDER.index(StepEnum(step))


__all__ = [
    "StepDescriptor",
    "STEP_TABLE",
    "STEP_ORDER",
    "SELECTION_SOURCES",
    "get_descriptor",
    "step_index",
]
