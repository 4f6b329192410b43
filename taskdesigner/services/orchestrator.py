"""Step orchestrator for the performance task workflow.

Drives the six-step flow:
  task_ideas → focus_topics → product_options   (generate, then select by id)
  requirements → rubric                         (generate, then advance)
  performance_task_complete                     (summary, assembled once)

Each turn either advances (a valid selection was made) or (re)generates the
candidate set for the current step. Every error inside a turn becomes reply
text; only an unknown session id reaches the caller.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, Field

from taskdesigner.config import Settings, settings as default_settings
from taskdesigner.core.enums import MessageRole, SlotName, StepEnum
from taskdesigner.core.models import ChatMessage, PerformanceTask, UnitState
from taskdesigner.core.steps import StepDescriptor, get_descriptor
from taskdesigner.exceptions import (
    CompletionError,
    InvalidTransitionError,
    MissingPrerequisiteError,
    SelectionOutOfRangeError,
    TooManySelectedError,
)
from taskdesigner.logging_config import get_logger
from taskdesigner.services import formatter
from taskdesigner.services.classifier import StepClassifier, create_classifier
from taskdesigner.services.completion import CompletionInvoker
from taskdesigner.services.context_builder import ContextBuilder
from taskdesigner.services.session_store import Session, SessionStore
from taskdesigner.services.summary import SummaryAssembler, create_summary_assembler

logger = get_logger(__name__)

_TEXT_RENDERERS = {
    StepEnum.REQUIREMENTS: formatter.requirements_message,
    StepEnum.RUBRIC: formatter.rubric_message,
}


class TurnResult(BaseModel):
    """Reply to one submitted message."""
    response_text: str
    current_step: StepEnum
    final_summary: Optional[PerformanceTask] = None


class SessionSnapshot(BaseModel):
    """Read-only copy of a session."""
    session_id: str
    unit: UnitState
    transcript: list[ChatMessage] = Field(default_factory=list)


def resolve_selection(
    descriptor: StepDescriptor,
    candidates: Sequence[BaseModel],
    selected_ids: Sequence[int],
) -> list[BaseModel]:
    """
    Map ids to candidates, in the order the user gave them.

    Raises:
        SelectionOutOfRangeError: If any id is not in the candidate set
        TooManySelectedError: If the step's selection cap is exceeded
    """
    ids = list(dict.fromkeys(selected_ids))
    if descriptor.single_select:
        ids = ids[:1]

    by_id = {c.id: c for c in candidates}
    invalid = [i for i in ids if i not in by_id]
    if invalid:
        raise SelectionOutOfRangeError(invalid, sorted(by_id))

    if descriptor.max_selection is not None and len(ids) > descriptor.max_selection:
        raise TooManySelectedError(len(ids), descriptor.max_selection)

    return [by_id[i] for i in ids]


class StepOrchestrator:
    """State machine executing one turn against a session.

    The caller must hold the session's lock for the whole turn.
    """

    def __init__(
        self,
        store: SessionStore,
        classifier: StepClassifier,
        invoker: CompletionInvoker,
        summary_assembler: SummaryAssembler,
        context_builder: ContextBuilder | None = None,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.invoker = invoker
        self.summary_assembler = summary_assembler
        self.context_builder = context_builder or ContextBuilder()

    async def run_turn(self, session: Session, user_message: str) -> str:
        self.store.append_message(session, MessageRole.USER, user_message)
        step = session.current_step
        logger.info("turn_started", session_id=session.session_id, step=step.value)

        try:
            response = await self._dispatch(session, user_message)
        except (MissingPrerequisiteError, InvalidTransitionError) as e:
            # Unreachable through the public API; indicates an orchestrator bug
            logger.error(
                "state_machine_defect",
                session_id=session.session_id,
                step=step.value,
                error_type=type(e).__name__,
                message=e.message,
                details=e.details,
            )
            response = formatter.CANNOT_PROCEED_TEXT
        except Exception:
            logger.exception("turn_failed", session_id=session.session_id, step=step.value)
            response = formatter.APOLOGY_TEXT

        self.store.append_message(session, MessageRole.ASSISTANT, response)
        logger.info(
            "turn_finished",
            session_id=session.session_id,
            from_step=step.value,
            to_step=session.current_step.value,
        )
        return response

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, session: Session, text: str) -> str:
        descriptor = get_descriptor(session.current_step)

        if descriptor.is_terminal:
            summary = await self._ensure_summary(session)
            return formatter.summary_message(summary)

        if not text.strip():
            return formatter.EMPTY_MESSAGE_TEXT

        if descriptor.selectable:
            return await self._selectable_step(session, descriptor, text)
        return await self._text_step(session, descriptor, text)

    async def _selectable_step(self, session: Session, descriptor: StepDescriptor, text: str) -> str:
        candidates = self.store.get(session, descriptor.candidate_slot) or []
        if not candidates:
            return await self._generate_candidates(session, descriptor, text)

        decision = await self.classifier.classify(descriptor.step, text, candidates)
        logger.info(
            "turn_classified",
            session_id=session.session_id,
            step=descriptor.step.value,
            ready_to_advance=decision.ready_to_advance,
            selected_ids=decision.selected_ids,
        )
        if not (decision.ready_to_advance and decision.selected_ids):
            return await self._generate_candidates(session, descriptor, text)

        try:
            selected = resolve_selection(descriptor, candidates, decision.selected_ids)
        except SelectionOutOfRangeError as e:
            logger.info("selection_out_of_range", session_id=session.session_id, **e.details)
            return formatter.invalid_selection(descriptor, e.invalid_ids, e.valid_ids)
        except TooManySelectedError as e:
            logger.info("selection_too_large", session_id=session.session_id, **e.details)
            return formatter.too_many_selected(descriptor, e.selected, e.maximum)

        value = selected[0] if descriptor.single_select else selected
        self.store.set(session, descriptor.selected_slot, value)
        self.store.advance_step(session, descriptor.next_step)
        return formatter.selection_confirmed(descriptor, selected)

    async def _generate_candidates(self, session: Session, descriptor: StepDescriptor, text: str) -> str:
        prompt = self.context_builder.build(descriptor.step, session.unit, text)
        try:
            result = await self.invoker.invoke(prompt, descriptor.response_shape)
        except CompletionError as e:
            self._log_generation_failure(session, descriptor, e)
            return formatter.APOLOGY_TEXT

        items = list(getattr(result, descriptor.items_field))
        self.store.set(session, descriptor.candidate_slot, items)
        logger.info(
            "candidates_generated",
            session_id=session.session_id,
            step=descriptor.step.value,
            ids=[item.id for item in items],
        )
        return formatter.candidates_message(descriptor, items)

    async def _text_step(self, session: Session, descriptor: StepDescriptor, text: str) -> str:
        prompt = self.context_builder.build(descriptor.step, session.unit, text)
        try:
            output = await self.invoker.invoke(prompt)
        except CompletionError as e:
            self._log_generation_failure(session, descriptor, e)
            return formatter.APOLOGY_TEXT

        self.store.set(session, descriptor.output_slot, output)
        self.store.advance_step(session, descriptor.next_step)
        response = _TEXT_RENDERERS[descriptor.step](output)

        if get_descriptor(descriptor.next_step).is_terminal:
            summary = await self._ensure_summary(session)
            response = f"{response}\n\n{formatter.summary_message(summary)}"
        return response

    async def _ensure_summary(self, session: Session) -> PerformanceTask:
        """Assemble the summary on first entry to the terminal step, then reuse it."""
        existing = self.store.get(session, SlotName.FINAL_SUMMARY)
        if existing is not None:
            return existing

        unit = session.unit
        self.context_builder.check_prerequisites(StepEnum.COMPLETE, unit)
        summary = await self.summary_assembler.assemble(unit.requirements_text, unit.rubric_text)
        self.store.set(session, SlotName.FINAL_SUMMARY, summary)
        logger.info("summary_assembled", session_id=session.session_id, title=summary.title)
        return summary

    @staticmethod
    def _log_generation_failure(session: Session, descriptor: StepDescriptor, error: CompletionError) -> None:
        logger.warning(
            "generation_failed",
            session_id=session.session_id,
            step=descriptor.step.value,
            error_type=type(error).__name__,
            message=error.message,
        )


class PerformanceTaskService:
    """Boundary the request layer talks to."""

    def __init__(
        self,
        store: SessionStore,
        orchestrator: StepOrchestrator,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator

    def initialize_session(self, session_id: str, topic: str, unit_title: str, grade_label: str) -> str:
        """
        Create a session and return the greeting.

        Raises:
            DuplicateSessionError: If the id is already in use
        """
        session = self.store.create_session(session_id, topic)
        self.store.init_unit(session, unit_title, grade_label)
        text = formatter.greeting(unit_title, grade_label)
        self.store.append_message(session, MessageRole.ASSISTANT, text)
        return text

    async def submit_message(self, session_id: str, text: str) -> TurnResult:
        """
        Run one turn for a session.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        session = self.store.get_session(session_id)
        async with self.store.lock(session):
            response = await self.orchestrator.run_turn(session, text)
            step = session.current_step
            summary = session.unit.final_summary if step == StepEnum.COMPLETE else None
        return TurnResult(response_text=response, current_step=step, final_summary=summary)

    def get_state(self, session_id: str) -> SessionSnapshot:
        session = self.store.get_session(session_id)
        return SessionSnapshot(
            session_id=session.session_id,
            unit=session.unit.model_copy(deep=True),
            transcript=list(session.transcript),
        )

    def reset_session(self, session_id: str) -> None:
        self.store.delete_session(session_id)

    async def aclose(self) -> None:
        await self.orchestrator.invoker.aclose()


def create_service(
    config: Settings | None = None,
    invoker: CompletionInvoker | None = None,
) -> PerformanceTaskService:
    """Wire the service from settings."""
    config = config or default_settings
    invoker = invoker or CompletionInvoker(config=config)
    store = SessionStore()
    orchestrator = StepOrchestrator(
        store=store,
        classifier=create_classifier(
            config.classifier_strategy, invoker, temperature=config.classifier_temperature
        ),
        invoker=invoker,
        summary_assembler=create_summary_assembler(config.summary_strategy, invoker),
    )
    logger.info(
        "service_created",
        classifier=config.classifier_strategy,
        summary=config.summary_strategy,
        model=config.claude_model,
    )
    return PerformanceTaskService(store=store, orchestrator=orchestrator)
