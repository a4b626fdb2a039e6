"""
Abstractions for pluggable services. Inversion of control: core depends
on interfaces, not concrete services. Enables fakes/mocks and future swaps.
Protocols define what services or components can do,
without saying how they do it.

Common protocols:
- LLMClient.chat(messages, settings) -> (reply, meta)
- GenerationService.generate_question / evaluate_answer / explain_concept
- BlobStorage.read(key) / write(key, text)
- RecognitionEngine.start(listener, ...) / stop() with a RecognitionListener

Testing: Use simple fake implementations to test the controller without network calls.
"""

from __future__ import annotations
from typing import Optional, Protocol, Sequence

from .models import EvaluationResult, LLMSettings, RecognitionResult, Topic


class LLMClient(Protocol):
    async def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]: ...

    async def transcribe(
        self, audio: bytes, *, model: str, stream: bool = False
    ): ...


class GenerationService(Protocol):
    async def generate_question(self, topic: Topic) -> str: ...

    async def evaluate_answer(
        self, topic: Topic, question: str, answer: str
    ) -> EvaluationResult: ...

    async def explain_concept(
        self, topic: Topic, question: str, follow_up: str
    ) -> str: ...


class PromptFactory(Protocol):
    def question_instruction(self, *, topic: Topic) -> str: ...

    def build_evaluation_system(self) -> str: ...

    def evaluation_instruction(
        self, *, topic: Topic, question: str, answer: str
    ) -> str: ...

    def build_mentor_system(self) -> str: ...

    def explanation_instruction(
        self, *, topic: Topic, question: str, follow_up: str
    ) -> str: ...


class BlobStorage(Protocol):
    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, text: str) -> None: ...


class RecognitionListener(Protocol):
    def on_result(self, results: Sequence[RecognitionResult]) -> None: ...

    def on_end(self) -> None: ...

    def on_error(self, code: str) -> None: ...


class RecognitionEngine(Protocol):
    def start(
        self,
        listener: RecognitionListener,
        *,
        locale: str,
        continuous: bool = True,
        interim_results: bool = True,
    ) -> None: ...

    def stop(self) -> None: ...
