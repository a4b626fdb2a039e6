import asyncio
import os
import sys

import pytest

# Ensure app/ is on sys.path so tests can import the coach package without install
APP_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, "app"))
if APP_ROOT not in sys.path:
    sys.path.insert(0, APP_ROOT)

from coach.controller import SessionController  # noqa: E402
from coach.models import EvaluationResult  # noqa: E402
from coach.persistence.history_store import HistoryStore  # noqa: E402
from coach.persistence.storage import InMemoryStorage  # noqa: E402


class FakeGenerationService:
    """
    Deterministic stand-in for the generation service.
    - questions are handed out in order (the last one repeats).
    - names in `fail` raise RuntimeError instead of answering.
    - names in `gates` wait for the matching asyncio.Event before answering.
    """

    def __init__(self):
        self.questions = ["Q1"]
        self.evaluation = EvaluationResult(
            score=90,
            analysis="Covers the main trade-offs.",
            missing_points=(),
            ideal_answer="A reference answer.",
        )
        self.explanation = "Here is how it works."
        self.fail: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple] = []

    async def _enter(self, name, *args):
        self.calls.append((name, *args))
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()
        if name in self.fail:
            raise RuntimeError(f"{name} is down")

    async def generate_question(self, topic):
        await self._enter("generate_question", topic)
        if len(self.questions) > 1:
            return self.questions.pop(0)
        return self.questions[0]

    async def evaluate_answer(self, topic, question, answer):
        await self._enter("evaluate_answer", topic, question, answer)
        return self.evaluation

    async def explain_concept(self, topic, question, follow_up):
        await self._enter("explain_concept", topic, question, follow_up)
        return self.explanation


@pytest.fixture()
def fake_service():
    return FakeGenerationService()


@pytest.fixture()
def storage():
    return InMemoryStorage()


@pytest.fixture()
def history_store(storage):
    return HistoryStore(storage, key="test_history")


@pytest.fixture()
def controller(fake_service, history_store):
    return SessionController(fake_service, history_store, timeout=2.0)
