"""Facade that keeps one DefaultPromptFactory API over the prompt modules."""

from __future__ import annotations

from ..models import Topic
from . import feedback as _feedback
from . import interview as _interview


class DefaultPromptFactory:
    def __init__(self, *, language: str = "English"):
        self.language = language

    # INTERVIEW
    def question_instruction(self, *, topic: Topic) -> str:
        return _interview.question_instruction(topic=topic, language=self.language)

    # EVALUATION
    def build_evaluation_system(self) -> str:
        return _feedback.build_evaluation_system(language=self.language)

    def evaluation_instruction(
        self, *, topic: Topic, question: str, answer: str
    ) -> str:
        return _feedback.evaluation_instruction(
            topic=topic, question=question, answer=answer
        )

    # FOLLOW-UP EXPLANATIONS
    def build_mentor_system(self) -> str:
        return _feedback.build_mentor_system(language=self.language)

    def explanation_instruction(
        self, *, topic: Topic, question: str, follow_up: str
    ) -> str:
        return _feedback.explanation_instruction(
            topic=topic, question=question, follow_up=follow_up
        )
