"""
Summary assembler - combines requirements and rubric into the final task.

SectionSummaryAssembler extracts fields deterministically from the text the
earlier steps produced. LLMSummaryAssembler asks the completion service for
the whole object and falls back to section extraction on any failure.
Neither raises.
"""

from abc import ABC, abstractmethod

from taskdesigner.core.models import PerformanceTask
from taskdesigner.exceptions import CompletionError
from taskdesigner.logging_config import get_logger
from taskdesigner.services import prompts
from taskdesigner.services.sections import as_text, extract_sections, parse_rubric_criteria

logger = get_logger(__name__)


class SummaryAssembler(ABC):
    """Builds the final PerformanceTask from requirements and rubric text."""

    @abstractmethod
    async def assemble(self, requirements_text: str | None, rubric_text: str | None) -> PerformanceTask:
        ...


class SectionSummaryAssembler(SummaryAssembler):

    async def assemble(self, requirements_text: str | None, rubric_text: str | None) -> PerformanceTask:
        return self.assemble_sync(requirements_text, rubric_text)

    def assemble_sync(self, requirements_text: str | None, rubric_text: str | None) -> PerformanceTask:
        req = extract_sections(requirements_text, prompts.REQUIREMENTS_SECTIONS)
        rub = extract_sections(rubric_text, prompts.RUBRIC_SECTIONS)
        criteria = parse_rubric_criteria(rub["Rubric Criteria"])

        summary = PerformanceTask(
            title=as_text(req["Title"]),
            subtitle=as_text(req["Subtitle"]),
            description=as_text(req["Description"]),
            purpose=as_text(req["Purpose"]),
            requirements=as_text(req["Requirements"]),
            success_criteria=as_text(rub["Success Criteria"]),
            suggested_focus_topics=as_text(rub["Suggested Focus Topics"]),
            rubric_title=as_text(rub["Rubric Title"]),
            rubric_description=as_text(rub["Rubric Description"]),
            rubric_criteria=criteria,
        )

        missing = [
            name for name, value in summary.model_dump(exclude={"rubric_criteria"}).items()
            if not value
        ]
        if missing:
            logger.info("summary_fields_missing", fields=missing)
        return summary


class LLMSummaryAssembler(SummaryAssembler):
    """Structured summary from the completion service, with a local fallback."""

    def __init__(self, invoker, fallback: SectionSummaryAssembler | None = None) -> None:
        self.invoker = invoker
        self.fallback = fallback or SectionSummaryAssembler()

    async def assemble(self, requirements_text: str | None, rubric_text: str | None) -> PerformanceTask:
        prompt = prompts.SUMMARY_PROMPT.format(
            requirements=requirements_text or "",
            rubric=rubric_text or "",
            levels=", ".join(prompts.RUBRIC_LEVELS),
        )
        prompt = f"{prompt}\n\n{prompts.format_instructions(PerformanceTask)}"
        try:
            return await self.invoker.invoke(prompt, PerformanceTask)
        except CompletionError as e:
            logger.warning("summary_llm_failed_using_sections", error=e.message)
            return self.fallback.assemble_sync(requirements_text, rubric_text)


def create_summary_assembler(strategy: str = "sections", invoker=None) -> SummaryAssembler:
    """Build the assembler named by the SUMMARY_STRATEGY setting."""
    if strategy == "llm":
        if invoker is None:
            raise ValueError("The llm summary assembler needs a completion invoker")
        return LLMSummaryAssembler(invoker)
    if strategy == "sections":
        return SectionSummaryAssembler()
    raise ValueError(f"Unknown summary strategy '{strategy}'. Valid strategies: llm, sections")
