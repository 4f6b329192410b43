"""
Step classifier - decides whether a message selects candidates or refines them.

Two strategies share the StepClassifier interface:
  PatternStepClassifier - deterministic regular expressions
  LLMStepClassifier     - asks the completion service, fails safe to "not ready"
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Sequence

from pydantic import BaseModel

from taskdesigner.core.enums import StepEnum
from taskdesigner.core.models import ClassifierDecision
from taskdesigner.exceptions import CompletionError
from taskdesigner.logging_config import get_logger
from taskdesigner.services import prompts

logger = get_logger(__name__)


@dataclass
class ClassificationResult:
    """Outcome of classifying one user message."""
    ready_to_advance: bool
    selected_ids: list[int] = field(default_factory=list)
    rationale: Optional[str] = None


class StepClassifier(ABC):
    """Interface shared by all classification strategies."""

    @abstractmethod
    async def classify(
        self,
        step: StepEnum,
        user_text: str,
        candidates: Sequence[BaseModel],
    ) -> ClassificationResult:
        """Classify a message against the candidates shown for a step."""


# ---------------------------------------------------------------------------
# Pattern-based
# ---------------------------------------------------------------------------

_NUMBER = re.compile(r"\d+")

PROCEED_PATTERNS = [
    re.compile(r"\b(?:select|choose|pick)\b.+?\b\d+\b", re.I),
    re.compile(r"\bnumber\s*\d+\b", re.I),
    re.compile(r"\boption\s*\d+\b", re.I),
    re.compile(r"\btask\s*\d+\b", re.I),
    re.compile(r"\btopic\s*\d+\b", re.I),
    re.compile(r"\b\d+\b"),
    re.compile(r"\byes\b", re.I),
    re.compile(r"\bproceed\b", re.I),
    re.compile(r"\bnext\b", re.I),
    re.compile(r"\bcontinue\b", re.I),
    re.compile(r"\bgood\b", re.I),
    re.compile(r"\bgreat\b", re.I),
    re.compile(r"\bi like\b", re.I),
    re.compile(r"\bsounds good\b", re.I),
    re.compile(r"\blet'?s go\b", re.I),
]

REFINEMENT_PATTERNS = [
    re.compile(r"\bchange\b", re.I),
    re.compile(r"\bmodify\b", re.I),
    re.compile(r"\brefine\b", re.I),
    re.compile(r"\breword\b", re.I),
    re.compile(r"\bdifferent\b", re.I),
    re.compile(r"\btry again\b", re.I),
    re.compile(r"\bdon'?t like\b", re.I),
    re.compile(r"\bnot good\b", re.I),
    re.compile(r"\bcan you\b.+?\b(?:change|update|modify)\b", re.I),
    re.compile(r"\bwhat if\b", re.I),
    re.compile(r"\bhow about\b", re.I),
    re.compile(r"\bwhat about\b", re.I),
    re.compile(r"\?$"),
]


class PatternStepClassifier(StepClassifier):
    """Regex classifier. Refinement patterns win over proceed patterns."""

    def __init__(
        self,
        proceed_patterns: Optional[list[re.Pattern]] = None,
        refinement_patterns: Optional[list[re.Pattern]] = None,
    ) -> None:
        self.proceed_patterns = proceed_patterns or PROCEED_PATTERNS
        self.refinement_patterns = refinement_patterns or REFINEMENT_PATTERNS

    async def classify(
        self,
        step: StepEnum,
        user_text: str,
        candidates: Sequence[BaseModel],
    ) -> ClassificationResult:
        return self.classify_text(user_text)

    def classify_text(self, user_text: str) -> ClassificationResult:
        clean = user_text.strip().lower()
        result = ClassificationResult(
            ready_to_advance=False,
            rationale="Please provide clearer instructions on how to proceed.",
        )

        if any(p.search(clean) for p in self.proceed_patterns):
            result.ready_to_advance = True
            result.selected_ids = [int(n) for n in _NUMBER.findall(clean)]
            result.rationale = "Ready to proceed to the next step."

        if any(p.search(clean) for p in self.refinement_patterns):
            result.ready_to_advance = False
            result.selected_ids = []
            result.rationale = "User is requesting refinements or has questions."

        return result


# ---------------------------------------------------------------------------
# Model-based
# ---------------------------------------------------------------------------

class LLMStepClassifier(StepClassifier):
    """Delegates the decision to the completion service."""

    def __init__(self, invoker, temperature: float = 0.0) -> None:
        self.invoker = invoker
        self.temperature = temperature

    async def classify(
        self,
        step: StepEnum,
        user_text: str,
        candidates: Sequence[BaseModel],
    ) -> ClassificationResult:
        prompt = prompts.CLASSIFIER_PROMPT.format(
            step=StepEnum(step).value,
            user_input=user_text,
            candidates=json.dumps(
                [c.model_dump() for c in candidates], ensure_ascii=False, indent=2
            ),
        )
        prompt = f"{prompt}\n\n{prompts.format_instructions(ClassifierDecision)}"

        try:
            decision = await self.invoker.invoke(
                prompt,
                ClassifierDecision,
                system=prompts.CLASSIFIER_SYSTEM_PROMPT,
                temperature=self.temperature,
                max_tokens=512,
            )
        except CompletionError as e:
            logger.warning("classifier_failed_safe", step=StepEnum(step).value, error=e.message)
            return ClassificationResult(
                ready_to_advance=False,
                rationale="Could not determine intent. Please clarify your choice.",
            )

        return ClassificationResult(
            ready_to_advance=decision.ready_to_advance,
            selected_ids=list(decision.selected_ids) if decision.ready_to_advance else [],
            rationale=decision.rationale or None,
        )


def create_classifier(strategy: str = "pattern", invoker=None, temperature: float = 0.0) -> StepClassifier:
    """Build the classifier named by the CLASSIFIER_STRATEGY setting."""
    if strategy == "llm":
        if invoker is None:
            raise ValueError("The llm classifier needs a completion invoker")
        return LLMStepClassifier(invoker, temperature=temperature)
    if strategy == "pattern":
        return PatternStepClassifier()
    raise ValueError(f"Unknown classifier strategy '{strategy}'. Valid strategies: llm, pattern")
