"""
Purpose: The single orchestration point for an interview session. Owns the
phase, the current topic/question, the active message log and the pending
input buffer.

Key responsibilities:
- Drive the phase machine: IDLE -> GENERATING_QUESTION -> AWAITING_ANSWER
  -> EVALUATING -> REVIEWING, with EXPLAINING for follow-up questions and a
  loop back to GENERATING_QUESTION on "next question".
- Call the generation service (one call in flight at a time, enforced by the
  phase guards) and substitute a fixed fallback when a call fails or times out.
- Upsert every change into the HistoryStore under the session id captured when
  the call was issued, never a value reread after the await.
- Restore a stored session (load_history).

Testing: Pure unit tests with a fake GenerationService and an in-memory
HistoryStore. Verify transitions, log contents, persistence and fallbacks.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from . import config
from .interfaces import GenerationService
from .message_log import MessageLog
from .models import (
    EvaluationResult,
    HistorySession,
    Message,
    MessageKind,
    Phase,
    Sender,
    Topic,
    new_id,
    now_ms,
)
from .persistence.history_store import HistoryStore
from .utils.constants import (
    EVALUATION_FALLBACK_ANALYSIS,
    EVALUATION_FALLBACK_IDEAL_ANSWER,
    EVALUATION_FALLBACK_MISSING_POINT,
    EVALUATION_INTRO,
    EXPLANATION_FALLBACK,
    QUESTION_FALLBACK,
    READY_MESSAGE,
    WELCOME_MESSAGE,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_EVALUATION = EvaluationResult(
    score=0,
    analysis=EVALUATION_FALLBACK_ANALYSIS,
    missing_points=(EVALUATION_FALLBACK_MISSING_POINT,),
    ideal_answer=EVALUATION_FALLBACK_IDEAL_ANSWER,
)


@dataclass(frozen=True)
class _SessionRef:
    """Identity of the session a pending call belongs to."""

    id: str
    topic: Topic
    start_time: int
    log: MessageLog


def infer_question(messages: list[Message], welcome_text: str = WELCOME_MESSAGE):
    """The first AI text after the opening message is the session's question."""
    for m in messages:
        if m.is_ai_text and m.content != welcome_text:
            return m.content
    return None


def restore_phase(session: HistorySession, question: Optional[str]) -> Phase:
    # Nothing to answer or review without a question.
    if question is None:
        return Phase.IDLE
    if session.phase is not None:
        if session.phase.in_flight:
            return Phase.REVIEWING
        return session.phase

    # Records written before the phase was stored.
    last = session.messages[-1] if session.messages else None
    if last is None:
        return Phase.IDLE
    if last.kind == MessageKind.EVALUATION or last.sender == Sender.USER:
        return Phase.REVIEWING
    if last.is_ai_text and last.content == question:
        return Phase.AWAITING_ANSWER
    return Phase.REVIEWING


class SessionController:
    def __init__(
        self,
        service: GenerationService,
        history: HistoryStore,
        *,
        timeout: Optional[float] = None,
        welcome_text: str = WELCOME_MESSAGE,
    ):
        self.service: GenerationService = service
        self.history: HistoryStore = history
        self.timeout = config.GENERATION_TIMEOUT_S if timeout is None else timeout
        self.welcome_text = welcome_text

        self.pending_input: str = ""
        self._phase = Phase.IDLE
        self._topic: Optional[Topic] = None
        self._question: Optional[str] = None
        self._session: Optional[_SessionRef] = None
        self._log = MessageLog([Message(sender=Sender.AI, content=welcome_text)])

    # ----- views -----

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def messages(self) -> list[Message]:
        return self._log.snapshot()

    @property
    def current_topic(self) -> Optional[Topic]:
        return self._topic

    @property
    def current_question(self) -> Optional[str]:
        return self._question

    @property
    def session_id(self) -> Optional[str]:
        return self._session.id if self._session else None

    @property
    def is_busy(self) -> bool:
        return self._phase.in_flight

    @property
    def can_submit(self) -> bool:
        return bool(self._question) and self._phase in (
            Phase.AWAITING_ANSWER,
            Phase.REVIEWING,
        )

    @property
    def can_advance(self) -> bool:
        return self._phase == Phase.REVIEWING and self._topic is not None

    # ----- transitions -----

    async def start_topic(self, topic: Topic) -> bool:
        """Open a new session on topic and ask its first question."""
        if self._phase.in_flight:
            logger.warning(
                "Ignoring start of %s while %s", topic.name, self._phase.name
            )
            return False

        ref = _SessionRef(
            id=new_id(),
            topic=topic,
            start_time=now_ms(),
            log=MessageLog(
                [
                    Message(
                        sender=Sender.USER,
                        content=READY_MESSAGE.format(topic=topic.value),
                    )
                ]
            ),
        )
        self._session = ref
        self._log = ref.log
        self._topic = topic
        self._question = None
        self.pending_input = ""
        self._phase = Phase.GENERATING_QUESTION
        logger.info("Session %s started on %s", ref.id, topic.name)

        question = await self._call(
            QUESTION_FALLBACK, self.service.generate_question, topic
        )

        ref.log.append(Message(sender=Sender.AI, content=question))
        if self._is_active(ref):
            self._question = question
            self._phase = Phase.AWAITING_ANSWER
        self._persist(ref, Phase.AWAITING_ANSWER, question, preview_question=question)
        return True

    select_topic = start_topic

    async def submit_input(self, text: Optional[str] = None) -> bool:
        """
        Submit an answer (AWAITING_ANSWER) or a follow-up question (REVIEWING).
        With no text, the pending input buffer is submitted and cleared.
        """
        from_buffer = text is None
        if from_buffer:
            text = self.pending_input
        if not text or not text.strip() or not self._question or self._session is None:
            return False
        if self._phase not in (Phase.AWAITING_ANSWER, Phase.REVIEWING):
            logger.warning("Ignoring input while %s", self._phase.name)
            return False
        if from_buffer:
            self.pending_input = ""

        ref = self._session
        topic, question = ref.topic, self._question
        answering = self._phase == Phase.AWAITING_ANSWER

        ref.log.append(Message(sender=Sender.USER, content=text))
        self._phase = Phase.EVALUATING if answering else Phase.EXPLAINING
        self._persist(ref, self._phase, question)

        if answering:
            evaluation = await self._call(
                FALLBACK_EVALUATION, self.service.evaluate_answer, topic, question, text
            )
            ref.log.append(
                Message(
                    sender=Sender.AI,
                    content=EVALUATION_INTRO,
                    kind=MessageKind.EVALUATION,
                    evaluation=evaluation,
                )
            )
        else:
            explanation = await self._call(
                EXPLANATION_FALLBACK, self.service.explain_concept, topic, question, text
            )
            ref.log.append(Message(sender=Sender.AI, content=explanation))

        if self._is_active(ref):
            self._phase = Phase.REVIEWING
        self._persist(ref, Phase.REVIEWING, question)
        return True

    async def advance_to_next_question(self) -> bool:
        if not self.can_advance:
            logger.warning("Next question requested while %s", self._phase.name)
            return False
        return await self.start_topic(self._topic)

    def load_history(self, session: HistorySession) -> bool:
        """Replace the active session wholesale with a stored one."""
        if self._phase.in_flight:
            logger.warning("Ignoring load of %s while %s", session.id, self._phase.name)
            return False

        log = MessageLog(session.messages)
        question = session.current_question or infer_question(
            session.messages, self.welcome_text
        )
        self._session = _SessionRef(
            id=session.id, topic=session.topic, start_time=session.start_time, log=log
        )
        self._log = log
        self._topic = session.topic
        self._question = question
        self._phase = restore_phase(session, question)
        self.pending_input = ""
        logger.info("Loaded session %s in phase %s", session.id, self._phase.name)
        return True

    def reset(self) -> bool:
        """Back to IDLE with only the welcome message."""
        if self._phase.in_flight:
            logger.warning("Ignoring reset while %s", self._phase.name)
            return False
        self._session = None
        self._topic = None
        self._question = None
        self.pending_input = ""
        self._log = MessageLog([Message(sender=Sender.AI, content=self.welcome_text)])
        self._phase = Phase.IDLE
        return True

    def append_pending_input(self, fragment: str) -> None:
        fragment = (fragment or "").strip()
        if not fragment:
            return
        if self.pending_input and not self.pending_input[-1].isspace():
            self.pending_input += " "
        self.pending_input += fragment

    # ----- helpers -----

    def _is_active(self, ref: _SessionRef) -> bool:
        return self._session is not None and self._session.id == ref.id

    async def _call(
        self, fallback: T, fn: Callable[..., Awaitable[T]], *args
    ) -> T:
        try:
            return await asyncio.wait_for(fn(*args), timeout=self.timeout)
        except Exception:
            logger.exception("%s failed; using fallback", getattr(fn, "__name__", fn))
            return fallback

    def _persist(
        self,
        ref: _SessionRef,
        phase: Phase,
        question: Optional[str],
        *,
        preview_question: Optional[str] = None,
    ) -> None:
        self.history.upsert(
            HistorySession(
                id=ref.id,
                topic=ref.topic,
                messages=ref.log.snapshot(),
                start_time=ref.start_time,
                phase=phase,
                current_question=question,
            ),
            question=preview_question,
        )
