"""Prompt templates for the performance task workflow.

One template per step, plus the classifier and summary prompts:
  TASK_IDEAS_PROMPT       - three real-world task ideas (JSON)
  FOCUS_TOPICS_PROMPT     - 5-7 focus topics for the chosen idea (JSON)
  PRODUCT_OPTIONS_PROMPT  - final product options (JSON)
  REQUIREMENTS_PROMPT     - student-facing requirements (## sections)
  RUBRIC_PROMPT           - four-level rubric (## sections)
  SUMMARY_PROMPT          - combine requirements + rubric (JSON)
  CLASSIFIER_PROMPT       - select vs. refine decision (JSON)

Templates use str.format placeholders; JSON format instructions are
appended separately by format_instructions().
"""

import json
from typing import Type

from pydantic import BaseModel

from taskdesigner.core.enums import StepEnum


# ---------------------------------------------------------------------------
# Section markers for free-text steps
# ---------------------------------------------------------------------------

REQUIREMENTS_SECTIONS = ("Title", "Subtitle", "Description", "Purpose", "Requirements")
RUBRIC_SECTIONS = (
    "Success Criteria",
    "Suggested Focus Topics",
    "Rubric Title",
    "Rubric Description",
    "Rubric Criteria",
)
RUBRIC_LEVELS = ("Try", "Relevant", "Accurate", "Complex")


# ---------------------------------------------------------------------------
# Step 1 - Task ideas
# ---------------------------------------------------------------------------

TASK_IDEAS_PROMPT = """# Goal:
Design task ideas for the unit titled "{unit_title}" tailored for {grade_label} grade students in a virtual school for neurodiverse learners.
Unit topic: {topic}

User has provided this context: "{user_input}"

## Step 1: Design Three Task Ideas
Create 3 distinct, engaging task ideas that align with real-world roles and scenarios. Each idea should:
- Connect to a real-world role relevant to the unit skills
- Include a clear audience and purpose
- Directly connect to the skills needing assessment

Number the ideas with ids starting at 1. Each should have an id, title, description, role, audience, and purpose."""


# ---------------------------------------------------------------------------
# Step 2 - Focus topics
# ---------------------------------------------------------------------------

FOCUS_TOPICS_PROMPT = """The selected task idea is:

{task_idea}

Unit: "{unit_title}" ({grade_label} grade)

User has provided this additional context: "{user_input}"

## Step 2: Provide Focus Topic Options
Provide 5-7 diverse focus topic options tied to the unit's essential question and content themes. Keep descriptions brief and accessible.

Number the topics with ids starting at 1. Each focus topic should have an id, topic (title), and description."""


# ---------------------------------------------------------------------------
# Step 3 - Product options
# ---------------------------------------------------------------------------

PRODUCT_OPTIONS_PROMPT = """The selected task idea is:

{task_idea}

Selected focus topics:
{focus_topics}

User has provided this additional context: "{user_input}"

## Step 3: Offer Final Product Options
Present 6 diverse, accessible final product options that align with the selected task idea and focus topics. The teacher will keep up to four of them.
Each option should:
- Be practical and engaging for a virtual school environment
- Support Universal Design for Learning principles
- Be presented as a clear, single-sentence description

Number the options with ids starting at 1. Each product option should have an id, title, and description."""


# ---------------------------------------------------------------------------
# Step 4 - Requirements
# ---------------------------------------------------------------------------

REQUIREMENTS_PROMPT = """The selected task components are:

Task Idea:
{task_idea}

Focus Topics:
{focus_topics}

Product Options:
{product_options}

User has provided this additional context: "{user_input}"

## Step 4: Create Student-Facing Requirements
Provide a thorough, practical student-facing description including:
- A clear, engaging title (15 words or less)
- A brief, descriptive subtitle (25 words or less)
- A 2-3 sentence overview of the task in simple terms
- A purpose statement explaining why this task matters to their lives (3-5 sentences)
- 8-10 detailed bullet points tied to essential skills

Return plain text using exactly these section headings, each on its own line, in this order:
{section_headings}"""


# ---------------------------------------------------------------------------
# Step 5 - Rubric
# ---------------------------------------------------------------------------

RUBRIC_PROMPT = """The performance task so far:

Task Idea:
{task_idea}

Focus Topics:
{focus_topics}

Product Options:
{product_options}

Requirements:
{requirements}

User has provided this additional context: "{user_input}"

## Step 5: Develop a Student-Facing Rubric
Create a detailed, skill-focused rubric with four levels: {levels}.
Each level should:
- Include clear, descriptive language for neurodiverse students
- Focus on observable behaviors for the targeted skills

Return plain text using exactly these section headings, each on its own line, in this order:
{section_headings}

Under "Success Criteria" list the chosen product options as bullet points.
Under "Suggested Focus Topics" list the focus topics as bullet points.
Under "Rubric Criteria" write one bullet per level in the form "- Level: description"."""


# ---------------------------------------------------------------------------
# Step 6 - Summary
# ---------------------------------------------------------------------------

SUMMARY_PROMPT = """## Step 6: Return a Summary in JSON Format
Create a complete performance task summary with all required fields.

Requirements data:
{requirements}

Rubric data:
{rubric}

Combine these components into a complete performance task. The rubric criteria must contain the four levels {levels} with order numbers 1-4."""


# ---------------------------------------------------------------------------
# Step classifier
# ---------------------------------------------------------------------------

CLASSIFIER_SYSTEM_PROMPT = "You are a step validator for a performance task design workflow. Respond only with valid JSON."

CLASSIFIER_PROMPT = """Current step: {step}
User input: {user_input}
Options currently presented:
{candidates}

Determine if the user is ready to proceed to the next step or if they are asking for refinements/changes to the current step.

Instructions:
- If the user clearly selects one or more of the presented options by number, set ready_to_advance to true and list the chosen ids in selected_ids
- If the user is asking for modifications, refinements, or has questions about the current step, set ready_to_advance to false
- If the user's intent is unclear, set ready_to_advance to false
- Explain your reasoning briefly in rationale"""


_STEP_PROMPTS = {
    StepEnum.TASK_IDEAS: TASK_IDEAS_PROMPT,
    StepEnum.FOCUS_TOPICS: FOCUS_TOPICS_PROMPT,
    StepEnum.PRODUCT_OPTIONS: PRODUCT_OPTIONS_PROMPT,
    StepEnum.REQUIREMENTS: REQUIREMENTS_PROMPT,
    StepEnum.RUBRIC: RUBRIC_PROMPT,
}


def get_step_prompt(step: StepEnum) -> str:
    """Return the template for a step.

    Raises:
        KeyError: If the step has no template.
    """
    return _STEP_PROMPTS[StepEnum(step)]


def section_headings(names: tuple[str, ...]) -> str:
    return "\n".join(f"## {name}" for name in names)


def format_instructions(shape: Type[BaseModel]) -> str:
    """JSON output instructions derived from a pydantic model."""
    schema = json.dumps(shape.model_json_schema(), ensure_ascii=False, indent=2)
    return (
        "Output strictly as a JSON object - no additional text, no markdown - "
        "that conforms to this JSON schema:\n"
        f"{schema}"
    )
