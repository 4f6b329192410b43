"""Markdown rendering of assistant replies.

All user-facing copy of the workflow lives here so the orchestrator only
decides *which* reply to send.
"""

from typing import Sequence

from pydantic import BaseModel

from taskdesigner.core.enums import StepEnum
from taskdesigner.core.models import FocusTopic, PerformanceTask, ProductOption, TaskIdea
from taskdesigner.core.steps import StepDescriptor
from taskdesigner.services import prompts
from taskdesigner.services.sections import extract_sections, parse_rubric_criteria

APOLOGY_TEXT = (
    "Sorry, I wasn't able to generate that just now. Could you add a bit more "
    "detail about what you're looking for and send it again?"
)

CANNOT_PROCEED_TEXT = (
    "Sorry, I can't continue from this point because an earlier choice is missing. "
    "Please start a new session."
)

EMPTY_MESSAGE_TEXT = "Please type a message so I can help with this step."


def greeting(unit_title: str, grade_label: str) -> str:
    return (
        f'Let\'s design a performance task for "{unit_title}" for {grade_label} grade '
        "students. What skills should students demonstrate through this task?"
    )


# ── Candidates ─────────────────────────────────────────────────────────────

def _render_item(descriptor: StepDescriptor, item: BaseModel) -> str:
    if isinstance(item, TaskIdea):
        return (
            f"**{descriptor.item_label} {item.id}: {item.title}**\n{item.description}\n"
            f"**Role:** {item.role}\n**Audience:** {item.audience}\n**Purpose:** {item.purpose}"
        )
    if isinstance(item, FocusTopic):
        return f"**{descriptor.item_label} {item.id}: {item.topic}**\n{item.description}"
    if isinstance(item, ProductOption):
        return f"**{descriptor.item_label} {item.id}: {item.title}**\n{item.description}"
    raise TypeError(f"Unsupported candidate type: {type(item).__name__}")


def _item_heading(descriptor: StepDescriptor, item: BaseModel) -> str:
    name = item.topic if isinstance(item, FocusTopic) else item.title
    return f"**{descriptor.item_label} {item.id}: {name}**"


_CANDIDATE_INTROS = {
    StepEnum.TASK_IDEAS: "Based on the unit information, I've generated these performance task ideas:",
    StepEnum.FOCUS_TOPICS: "Here are some potential focus topics for this performance task:",
    StepEnum.PRODUCT_OPTIONS: "Here are product options for students to demonstrate their learning:",
}


def candidates_message(descriptor: StepDescriptor, items: Sequence[BaseModel]) -> str:
    body = "\n\n".join(_render_item(descriptor, item) for item in items)
    if descriptor.single_select:
        ask = (
            f"Which {descriptor.item_label.lower()} idea would you like to develop further? "
            "Please select by number, or tell me what to change."
        )
    elif descriptor.max_selection:
        ask = (
            f"Which product options would you like to include? Select up to "
            f"{descriptor.max_selection} by number, or tell me what to change."
        )
    else:
        ask = (
            'Which topics would you like to include? You can select multiple by number '
            '(e.g., "1, 3, and 5"), or tell me what to change.'
        )
    return f"{_CANDIDATE_INTROS[descriptor.step]}\n\n{body}\n\n{ask}"


# ── Selection replies ──────────────────────────────────────────────────────

_NEXT_QUESTIONS = {
    StepEnum.FOCUS_TOPICS: (
        "Now, let's identify some focus topics for this performance task. "
        "What specific content areas should students explore?"
    ),
    StepEnum.PRODUCT_OPTIONS: (
        "Now, let's consider product options for students to demonstrate their learning. "
        "What types of products would be engaging and accessible?"
    ),
    StepEnum.REQUIREMENTS: (
        "Now, let's create the student-facing requirements. "
        "What essential skills should students demonstrate through this task?"
    ),
}


def selection_confirmed(descriptor: StepDescriptor, selected: Sequence[BaseModel]) -> str:
    if descriptor.single_select:
        item = selected[0]
        head = f"Great choice! You've selected:\n\n**{item.title}**\n{item.description}"
    else:
        noun = "focus topics" if descriptor.step == StepEnum.FOCUS_TOPICS else "product options"
        listing = "\n".join(_item_heading(descriptor, item) for item in selected)
        head = f"You've selected these {noun}:\n\n{listing}"
    return f"{head}\n\n{_NEXT_QUESTIONS[descriptor.next_step]}"


def invalid_selection(descriptor: StepDescriptor, invalid_ids: list[int], valid_ids: list[int]) -> str:
    wrong = ", ".join(str(i) for i in invalid_ids)
    valid = ", ".join(str(i) for i in valid_ids)
    return (
        f"I couldn't find {descriptor.item_label.lower()} {wrong}. "
        f"Please pick a valid number ({valid})."
    )


def too_many_selected(descriptor: StepDescriptor, selected: int, maximum: int) -> str:
    return (
        f"You've selected {selected} {descriptor.title.lower()}. "
        f"Please narrow your selection to {maximum} or fewer."
    )


# ── Generated text steps ───────────────────────────────────────────────────

def requirements_message(requirements_text: str) -> str:
    req = extract_sections(requirements_text, prompts.REQUIREMENTS_SECTIONS)
    if not any(req.values()):
        body = f"Here are the requirements for your performance task:\n\n{requirements_text}"
    else:
        body = (
            "Here's the start of your performance task:\n\n"
            f"**Title:** {req['Title']}\n**Subtitle:** {req['Subtitle']}\n\n"
            f"**Description:**\n{req['Description']}\n\n"
            f"**Purpose:**\n{req['Purpose']}\n\n"
            f"**Requirements:**\n{req['Requirements']}"
        )
    return (
        f"{body}\n\nNow, let's create a rubric to assess student work. "
        "What specific skills should we assess?"
    )


def rubric_message(rubric_text: str) -> str:
    rub = extract_sections(rubric_text, prompts.RUBRIC_SECTIONS)
    criteria = parse_rubric_criteria(rub["Rubric Criteria"])
    if not criteria and not rub["Rubric Title"]:
        body = f"Here's the rubric information for your performance task:\n\n{rubric_text}"
    else:
        criteria_text = "\n".join(f"**{c.name}:** {c.description}" for c in criteria)
        body = (
            "Here's the rubric for your performance task:\n\n"
            f"**Title:** {rub['Rubric Title']}\n\n"
            f"**Description:**\n{rub['Rubric Description']}\n\n"
            f"**Criteria:**\n{criteria_text}"
        )
    return f"{body}\n\nThe performance task is now complete! The full summary is below."


def summary_message(task: PerformanceTask) -> str:
    criteria_text = "\n".join(f"**{c.name}:** {c.description}" for c in task.rubric_criteria)
    return (
        "# Complete Performance Task Summary\n\n"
        f"**Title:** {task.title}\n**Subtitle:** {task.subtitle}\n\n"
        f"**Description:**\n{task.description}\n\n"
        f"**Purpose:**\n{task.purpose}\n\n"
        f"**Requirements:**\n{task.requirements}\n\n"
        f"**Success Criteria:**\n{task.success_criteria}\n\n"
        f"**Suggested Focus Topics:**\n{task.suggested_focus_topics}\n\n"
        f"**Rubric Title:** {task.rubric_title}\n\n"
        f"**Rubric Description:**\n{task.rubric_description}\n\n"
        f"**Rubric Criteria:**\n{criteria_text}"
    )
