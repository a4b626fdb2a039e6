import asyncio

import pytest

from coach.controller import SessionController
from coach.models import (
    EvaluationResult,
    HistorySession,
    Message,
    MessageKind,
    Phase,
    Sender,
    Topic,
)
from coach.utils.constants import (
    EVALUATION_FALLBACK_MISSING_POINT,
    EXPLANATION_FALLBACK,
    QUESTION_FALLBACK,
    READY_MESSAGE,
    WELCOME_MESSAGE,
)


async def _wait_for_phase(controller, phase, limit=100):
    for _ in range(limit):
        if controller.phase == phase:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"controller never reached {phase}, stuck in {controller.phase}")


def test_new_controller_is_idle_with_welcome_only(controller, history_store):
    assert controller.phase == Phase.IDLE
    assert [m.content for m in controller.messages] == [WELCOME_MESSAGE]
    assert controller.current_question is None
    assert history_store.sessions == []


@pytest.mark.asyncio
async def test_start_topic_delivers_question_and_persists(controller, history_store):
    accepted = await controller.start_topic(Topic.JAVA_CORE)

    assert accepted is True
    msgs = controller.messages
    assert len(msgs) == 2
    assert msgs[0].sender == Sender.USER
    assert msgs[0].content == READY_MESSAGE.format(topic=Topic.JAVA_CORE.value)
    assert msgs[1].sender == Sender.AI
    assert msgs[1].kind == MessageKind.PLAIN_TEXT
    assert msgs[1].content == "Q1"
    assert controller.phase == Phase.AWAITING_ANSWER
    assert controller.current_question == "Q1"

    sessions = history_store.sessions
    assert len(sessions) == 1
    assert sessions[0].id == controller.session_id
    assert sessions[0].preview == "Q1"
    assert sessions[0].phase == Phase.AWAITING_ANSWER
    assert sessions[0].current_question == "Q1"


@pytest.mark.asyncio
async def test_submit_answer_appends_evaluation(controller, fake_service):
    await controller.start_topic(Topic.JAVA_CORE)

    assert await controller.submit_input("my answer") is True

    msgs = controller.messages
    assert len(msgs) == 4
    assert msgs[2].sender == Sender.USER
    assert msgs[2].content == "my answer"
    assert msgs[3].sender == Sender.AI
    assert msgs[3].kind == MessageKind.EVALUATION
    assert msgs[3].evaluation.score == 90
    assert controller.phase == Phase.REVIEWING
    assert ("evaluate_answer", Topic.JAVA_CORE, "Q1", "my answer") in fake_service.calls


@pytest.mark.asyncio
async def test_follow_up_in_review_gets_explanation(controller, fake_service):
    await controller.start_topic(Topic.REDIS)
    await controller.submit_input("answer")

    assert await controller.submit_input("why a sorted set?") is True

    msgs = controller.messages
    assert len(msgs) == 6
    assert msgs[4].sender == Sender.USER
    assert msgs[5].sender == Sender.AI
    assert msgs[5].kind == MessageKind.PLAIN_TEXT
    assert msgs[5].content == "Here is how it works."
    assert controller.phase == Phase.REVIEWING
    assert ("explain_concept", Topic.REDIS, "Q1", "why a sorted set?") in fake_service.calls
    # only one evaluation for the one answer
    assert sum(1 for m in msgs if m.kind == MessageKind.EVALUATION) == 1


@pytest.mark.asyncio
async def test_question_failure_uses_fallback_and_still_advances(
    controller, fake_service, history_store
):
    fake_service.fail.add("generate_question")

    await controller.start_topic(Topic.JAVA_CORE)

    msgs = controller.messages
    assert len(msgs) == 2
    assert msgs[1].sender == Sender.AI
    assert msgs[1].content == QUESTION_FALLBACK
    assert controller.phase == Phase.AWAITING_ANSWER
    assert len(history_store.sessions) == 1


@pytest.mark.asyncio
async def test_evaluation_failure_uses_zero_score_fallback(controller, fake_service):
    fake_service.fail.add("evaluate_answer")
    await controller.start_topic(Topic.KAFKA)

    await controller.submit_input("my answer")

    evaluation = controller.messages[-1].evaluation
    assert evaluation.score == 0
    assert list(evaluation.missing_points) == [EVALUATION_FALLBACK_MISSING_POINT]
    assert controller.phase == Phase.REVIEWING


@pytest.mark.asyncio
async def test_explanation_failure_uses_apology(controller, fake_service):
    fake_service.fail.add("explain_concept")
    await controller.start_topic(Topic.KAFKA)
    await controller.submit_input("my answer")

    await controller.submit_input("what about ordering?")

    assert controller.messages[-1].content == EXPLANATION_FALLBACK
    assert controller.phase == Phase.REVIEWING


@pytest.mark.asyncio
async def test_hanging_service_times_out_into_fallback(fake_service, history_store):
    fake_service.gates["generate_question"] = asyncio.Event()  # never set
    controller = SessionController(fake_service, history_store, timeout=0.01)

    await controller.start_topic(Topic.MYSQL)

    assert controller.messages[-1].content == QUESTION_FALLBACK
    assert controller.phase == Phase.AWAITING_ANSWER


@pytest.mark.asyncio
async def test_blank_input_and_missing_question_are_no_ops(controller, history_store):
    assert await controller.submit_input("anything") is False
    assert len(controller.messages) == 1

    await controller.start_topic(Topic.MONGO)
    assert await controller.submit_input("   ") is False
    assert await controller.submit_input("") is False
    assert len(controller.messages) == 2
    assert controller.phase == Phase.AWAITING_ANSWER


@pytest.mark.asyncio
async def test_answer_is_saved_before_evaluation_returns(
    controller, fake_service, history_store
):
    await controller.start_topic(Topic.JAVA_CORE)
    session_id = controller.session_id
    gate = fake_service.gates["evaluate_answer"] = asyncio.Event()

    task = asyncio.create_task(controller.submit_input("my answer"))
    await _wait_for_phase(controller, Phase.EVALUATING)

    saved = history_store.get(session_id)
    assert saved.messages[-1].sender == Sender.USER
    assert saved.messages[-1].content == "my answer"
    assert saved.phase == Phase.EVALUATING

    # in-flight: every other transition is refused
    other = HistorySession(
        id="other",
        topic=Topic.REDIS,
        messages=[Message(sender=Sender.USER, content="hi"), Message(sender=Sender.AI, content="Q")],
    )
    assert await controller.start_topic(Topic.REDIS) is False
    assert await controller.submit_input("again") is False
    assert controller.load_history(other) is False
    assert controller.reset() is False

    gate.set()
    assert await task is True

    saved = history_store.get(session_id)
    assert saved.messages[-1].kind == MessageKind.EVALUATION
    assert saved.phase == Phase.REVIEWING
    assert len(history_store.sessions) == 1


@pytest.mark.asyncio
async def test_second_start_is_refused_while_question_is_generating(
    controller, fake_service, history_store
):
    gate = fake_service.gates["generate_question"] = asyncio.Event()

    first = asyncio.create_task(controller.start_topic(Topic.JAVA_CORE))
    await _wait_for_phase(controller, Phase.GENERATING_QUESTION)
    assert controller.is_busy

    assert await controller.start_topic(Topic.KAFKA) is False
    assert controller.current_topic == Topic.JAVA_CORE
    # only the ready message so far, so nothing is persisted yet
    assert history_store.sessions == []

    gate.set()
    await first
    assert controller.phase == Phase.AWAITING_ANSWER
    assert len(history_store.sessions) == 1
    assert history_store.sessions[0].topic == Topic.JAVA_CORE


@pytest.mark.asyncio
async def test_advance_to_next_question_opens_new_session(
    controller, fake_service, history_store
):
    fake_service.questions = ["Q1", "Q2"]
    await controller.start_topic(Topic.ELASTICSEARCH)
    first_id = controller.session_id

    assert await controller.advance_to_next_question() is False  # not reviewing yet

    await controller.submit_input("answer")
    assert controller.can_advance
    assert await controller.advance_to_next_question() is True

    assert controller.session_id != first_id
    assert [m.content for m in controller.messages][1] == "Q2"
    assert controller.phase == Phase.AWAITING_ANSWER
    assert controller.current_topic == Topic.ELASTICSEARCH
    assert {s.id for s in history_store.sessions} == {first_id, controller.session_id}
    assert history_store.get(first_id).preview == "Q1"


@pytest.mark.asyncio
async def test_load_history_round_trip_awaiting_answer(
    controller, fake_service, history_store
):
    await controller.start_topic(Topic.ALGORITHMS)
    stored = history_store.get(controller.session_id)

    fresh = SessionController(fake_service, history_store)
    assert fresh.load_history(stored) is True
    assert fresh.phase == Phase.AWAITING_ANSWER
    assert fresh.current_question == "Q1"

    await fresh.submit_input("late answer")
    assert fresh.messages[-1].kind == MessageKind.EVALUATION
    assert fresh.phase == Phase.REVIEWING
    # written back into the same record
    assert len(history_store.sessions) == 1
    assert history_store.get(stored.id).messages[-1].kind == MessageKind.EVALUATION


@pytest.mark.asyncio
async def test_load_history_round_trip_reviewing(controller, fake_service, history_store):
    await controller.start_topic(Topic.ALGORITHMS)
    await controller.submit_input("answer")
    stored = history_store.get(controller.session_id)

    fresh = SessionController(fake_service, history_store)
    fresh.load_history(stored)
    assert fresh.phase == Phase.REVIEWING

    await fresh.submit_input("follow-up")
    assert fresh.messages[-1].content == "Here is how it works."


def _legacy(messages, question=None, phase=None):
    return HistorySession(
        id="legacy",
        topic=Topic.MYSQL,
        messages=messages,
        phase=phase,
        current_question=question,
    )


def test_load_legacy_record_infers_phase(controller):
    ready = Message(sender=Sender.USER, content="ready")
    q = Message(sender=Sender.AI, content="Why is my index not used?")
    answer = Message(sender=Sender.USER, content="Because of the function on the column.")
    evaluation = Message(
        sender=Sender.AI,
        content="Evaluation",
        kind=MessageKind.EVALUATION,
        evaluation=EvaluationResult(score=70, analysis="ok"),
    )
    explanation = Message(sender=Sender.AI, content="An explanation.")

    controller.load_history(_legacy([ready, q]))
    assert controller.phase == Phase.AWAITING_ANSWER
    assert controller.current_question == q.content

    controller.load_history(_legacy([ready, q, answer, evaluation]))
    assert controller.phase == Phase.REVIEWING

    controller.load_history(_legacy([ready, q, answer]))
    assert controller.phase == Phase.REVIEWING

    controller.load_history(_legacy([ready, q, answer, evaluation, answer, explanation]))
    assert controller.phase == Phase.REVIEWING


def test_stored_phase_wins_over_content_match(controller):
    # an explanation that happens to repeat the question text
    ready = Message(sender=Sender.USER, content="ready")
    q = Message(sender=Sender.AI, content="Same text")
    answer = Message(sender=Sender.USER, content="answer")
    echo = Message(sender=Sender.AI, content="Same text")

    controller.load_history(
        _legacy([ready, q, answer, echo], question="Same text", phase=Phase.REVIEWING)
    )
    assert controller.phase == Phase.REVIEWING


def test_in_flight_stored_phase_settles_to_reviewing(controller):
    ready = Message(sender=Sender.USER, content="ready")
    q = Message(sender=Sender.AI, content="Q")
    answer = Message(sender=Sender.USER, content="answer")

    controller.load_history(_legacy([ready, q, answer], question="Q", phase=Phase.EVALUATING))

    assert controller.phase == Phase.REVIEWING
    assert not controller.is_busy


@pytest.mark.parametrize(
    "stored", [Phase.AWAITING_ANSWER, Phase.REVIEWING, Phase.GENERATING_QUESTION, None]
)
def test_record_without_question_loads_idle(controller, stored):
    messages = [
        Message(sender=Sender.USER, content="ready"),
        Message(sender=Sender.USER, content="hello?"),
    ]

    assert controller.load_history(_legacy(messages, phase=stored)) is True

    assert controller.phase == Phase.IDLE
    assert controller.current_question is None
    assert not controller.can_submit
    assert not controller.can_advance


@pytest.mark.asyncio
async def test_pending_input_buffer_is_submitted_and_cleared(controller):
    await controller.start_topic(Topic.SPRING_BOOT)
    controller.append_pending_input("Use constructor")
    controller.append_pending_input(" injection ")
    controller.append_pending_input("")

    assert controller.pending_input == "Use constructor injection"
    assert await controller.submit_input() is True
    assert controller.messages[2].content == "Use constructor injection"
    assert controller.pending_input == ""


@pytest.mark.asyncio
async def test_reset_returns_to_welcome(controller, history_store):
    await controller.start_topic(Topic.DESIGN_PATTERNS)

    assert controller.reset() is True
    assert controller.phase == Phase.IDLE
    assert [m.content for m in controller.messages] == [WELCOME_MESSAGE]
    assert controller.session_id is None
    # history is untouched
    assert len(history_store.sessions) == 1


@pytest.mark.asyncio
async def test_log_ids_unique_and_timestamps_ordered(controller):
    await controller.start_topic(Topic.CODING_ABILITY)
    await controller.submit_input("answer")
    await controller.submit_input("follow-up")

    msgs = controller.messages
    assert len({m.id for m in msgs}) == len(msgs)
    stamps = [m.timestamp for m in msgs]
    assert stamps == sorted(stamps)
