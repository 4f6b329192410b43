"""Context builder - renders the prompt for a step from the unit record."""

from taskdesigner.core.enums import SlotName, StepEnum
from taskdesigner.core.models import FocusTopic, ProductOption, TaskIdea, UnitState
from taskdesigner.core.steps import get_descriptor
from taskdesigner.exceptions import MissingPrerequisiteError
from taskdesigner.services import prompts
from taskdesigner.services.session_store import is_empty


def render_task_idea(idea: TaskIdea | None) -> str:
    if idea is None:
        return "(none)"
    return (
        f"Title: {idea.title}\n"
        f"Description: {idea.description}\n"
        f"Role: {idea.role}\n"
        f"Audience: {idea.audience}\n"
        f"Purpose: {idea.purpose}"
    )


def render_focus_topics(topics: list[FocusTopic]) -> str:
    if not topics:
        return "(none)"
    return "\n".join(f"{t.id}. {t.topic}: {t.description}" for t in topics)


def render_product_options(options: list[ProductOption]) -> str:
    if not options:
        return "(none)"
    return "\n".join(f"{o.id}. {o.title}: {o.description}" for o in options)


class ContextBuilder:
    """Builds the instruction block sent to the completion service for a step."""

    def build(self, step: StepEnum, unit: UnitState, user_input: str) -> str:
        """
        Render the prompt for a step.

        Raises:
            MissingPrerequisiteError: If a slot the step depends on is unset
        """
        descriptor = get_descriptor(step)
        self.check_prerequisites(step, unit)

        context = {
            "topic": unit.topic,
            "unit_title": unit.unit_title or "Unnamed Unit",
            "grade_label": unit.grade_label or "unspecified",
            "user_input": user_input.strip(),
            "task_idea": render_task_idea(unit.selected_task_idea),
            "focus_topics": render_focus_topics(unit.selected_focus_topics),
            "product_options": render_product_options(unit.selected_product_options),
            "requirements": unit.requirements_text or "",
            "rubric": unit.rubric_text or "",
            "levels": ", ".join(prompts.RUBRIC_LEVELS),
        }
        if descriptor.step == StepEnum.REQUIREMENTS:
            context["section_headings"] = prompts.section_headings(prompts.REQUIREMENTS_SECTIONS)
        elif descriptor.step == StepEnum.RUBRIC:
            context["section_headings"] = prompts.section_headings(prompts.RUBRIC_SECTIONS)

        text = prompts.get_step_prompt(descriptor.step).format(**context)
        if descriptor.response_shape is not None:
            text = f"{text}\n\n{prompts.format_instructions(descriptor.response_shape)}"
        return text

    @staticmethod
    def check_prerequisites(step: StepEnum, unit: UnitState) -> None:
        descriptor = get_descriptor(step)
        for slot in descriptor.required_slots:
            if is_empty(getattr(unit, SlotName(slot).value)):
                raise MissingPrerequisiteError(descriptor.step.value, slot.value)
