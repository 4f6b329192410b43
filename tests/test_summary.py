"""Tests for section extraction and summary assembly."""
import asyncio
from dataclasses import dataclass, field
from typing import Any

from taskdesigner.core.models import PerformanceTask, RubricCriterion
from taskdesigner.exceptions import CompletionServiceError
from taskdesigner.services.sections import extract_sections, normalize_key, parse_rubric_criteria
from taskdesigner.services.summary import (
    LLMSummaryAssembler,
    SectionSummaryAssembler,
    create_summary_assembler,
)

REQUIREMENTS = """## Title
Mission to Mars
## Subtitle
Planning a crewed landing
## Description
Students plan a crewed mission and present it to mission control.
## Purpose
Planning under constraints is a skill they will use every day.
## Requirements
- Research the Martian environment
- Present a mission plan"""

RUBRIC = """## Success Criteria
Students explain how their plan keeps the crew safe.
## Suggested Focus Topics
Martian geology, life support
## Rubric Title
Mission Plan Rubric
## Rubric Description
Assesses research and planning.
## Rubric Criteria
- Try: Names one hazard
- Relevant: Connects hazards to the plan
- Accurate: Uses correct data
- Complex: Evaluates trade-offs"""


@dataclass
class _FakeInvoker:
    result: Any = None
    calls: list = field(default_factory=list)

    async def invoke(self, prompt, expected_shape=None, **kwargs):
        self.calls.append((prompt, expected_shape))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestSections:
    def test_normalize_key(self):
        assert normalize_key("Success Criteria") == normalize_key("successCriteria")
        assert normalize_key("Requirements") == normalize_key("requirement")

    def test_markers(self):
        sections = extract_sections(REQUIREMENTS, ("Title", "Purpose", "Requirements"))
        assert sections["Title"] == "Mission to Mars"
        assert sections["Purpose"].startswith("Planning under constraints")
        assert "- Present a mission plan" in sections["Requirements"]

    def test_bold_and_inline_headings(self):
        text = "**Title:** Rover Race\nSubtitle: Build and test\n**Description:**\nA design challenge."
        sections = extract_sections(text, ("Title", "Subtitle", "Description"))
        assert sections == {
            "Title": "Rover Race",
            "Subtitle": "Build and test",
            "Description": "A design challenge.",
        }

    def test_json_layout(self):
        text = '{"title": "Rover Race", "successCriteria": "Works", "extra": 1}'
        sections = extract_sections(text, ("Title", "Success Criteria", "Purpose"))
        assert sections == {"Title": "Rover Race", "Success Criteria": "Works", "Purpose": ""}

    def test_missing_text(self):
        assert extract_sections(None, ("Title",)) == {"Title": ""}
        assert extract_sections("   ", ("Title",)) == {"Title": ""}

    def test_criteria_bullets(self):
        criteria = parse_rubric_criteria("- Try: a\n- Relevant: b\nnot a criterion")
        assert [(c.name, c.order_number) for c in criteria] == [("Try", 1), ("Relevant", 2)]

    def test_criteria_json_list(self):
        criteria = parse_rubric_criteria([
            {"name": "Complex", "description": "d", "orderNumber": 4},
            {"name": "Try", "description": "a", "order_number": "1"},
            {"description": "no name"},
        ])
        assert [(c.name, c.order_number) for c in criteria] == [("Complex", 4), ("Try", 1)]


class TestSectionSummaryAssembler:
    def test_full_summary(self):
        task = asyncio.run(SectionSummaryAssembler().assemble(REQUIREMENTS, RUBRIC))
        assert task.title == "Mission to Mars"
        assert task.subtitle == "Planning a crewed landing"
        assert task.rubric_title == "Mission Plan Rubric"
        assert task.suggested_focus_topics == "Martian geology, life support"
        assert [c.name for c in task.rubric_criteria] == ["Try", "Relevant", "Accurate", "Complex"]
        assert [c.order_number for c in task.rubric_criteria] == [1, 2, 3, 4]

    def test_missing_sections_default(self):
        task = SectionSummaryAssembler().assemble_sync("just some prose", None)
        assert task.title == ""
        assert task.rubric_title == ""
        assert task.rubric_criteria == [RubricCriterion(name="Try", description="", order_number=1)]

    def test_original_json_layout(self):
        requirements = '{"title": "T", "subtitle": "S", "description": "D", "purpose": "P", "requirements": ["a", "b"]}'
        rubric = (
            '{"successCriteria": "SC", "suggestedFocusTopics": "F", "rubricTitle": "RT", '
            '"rubricDescription": "RD", "rubricCriteria": ['
            '{"name": "Relevant", "description": "r", "orderNumber": 2},'
            '{"name": "Try", "description": "t", "orderNumber": 1}]}'
        )
        task = SectionSummaryAssembler().assemble_sync(requirements, rubric)
        assert task.requirements == "a\nb"
        assert task.success_criteria == "SC"
        assert [c.name for c in task.rubric_criteria] == ["Try", "Relevant"]


class TestLLMSummaryAssembler:
    def test_uses_model_output(self):
        expected = PerformanceTask(title="From model")
        invoker = _FakeInvoker(expected)
        task = asyncio.run(LLMSummaryAssembler(invoker).assemble(REQUIREMENTS, RUBRIC))
        assert task is expected
        prompt, shape = invoker.calls[0]
        assert shape is PerformanceTask
        assert "Mission to Mars" in prompt

    def test_falls_back_to_sections(self):
        invoker = _FakeInvoker(CompletionServiceError("timed out"))
        task = asyncio.run(LLMSummaryAssembler(invoker).assemble(REQUIREMENTS, RUBRIC))
        assert task.title == "Mission to Mars"
        assert len(task.rubric_criteria) == 4

    def test_factory(self):
        assert isinstance(create_summary_assembler(), SectionSummaryAssembler)
        assert isinstance(create_summary_assembler("llm", _FakeInvoker()), LLMSummaryAssembler)


class TestInlineObjects:
    def test_marker_text_with_inline_json(self):
        requirements = (
            "## Title\nMission to Mars\n"
            "## Description\nStudents log readings like {\"temp\": -60} each sol.\n"
            "## Purpose\nData matters."
        )
        task = SectionSummaryAssembler().assemble_sync(requirements, "")
        assert task.title == "Mission to Mars"
        assert task.purpose == "Data matters."
        assert '{"temp": -60}' in task.description

    def test_fenced_json_still_parsed(self):
        text = '```json\n{"title": "Rover Race"}\n```'
        assert extract_sections(text, ("Title", "Purpose")) == {"Title": "Rover Race", "Purpose": ""}
