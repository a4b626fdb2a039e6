"""
Purpose: The three generation calls the session controller depends on:
a new question per topic, a scored evaluation of an answer, and a mentor-style
explanation for a follow-up question.

Failures (empty reply, malformed JSON, SDK errors) are raised; the controller
owns the fallbacks so the state machine can always advance.

Testing: Fake LLMClient returning canned text; assert parsing, clamping and
GenerationError on bad payloads.
"""

from __future__ import annotations
import logging
from typing import Optional

from .. import config
from ..interfaces import LLMClient, PromptFactory
from ..models import EvaluationResult, LLMSettings, Topic
from ..prompts import DefaultPromptFactory
from ..utils.llm_json import require_object, to_str_list

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """The generation service returned nothing usable."""


def _clip_score(v) -> int:
    try:
        return max(0, min(100, int(round(float(v)))))
    except (TypeError, ValueError):
        raise GenerationError(f"Invalid score in evaluation: {v!r}")


def parse_evaluation(text: str) -> EvaluationResult:
    """Build an EvaluationResult from a model reply, or raise GenerationError."""
    try:
        obj = require_object(text, "Evaluation reply is not a JSON object.")
    except ValueError as e:
        raise GenerationError(str(e)) from e
    if "score" not in obj:
        raise GenerationError("Evaluation reply has no score.")
    analysis = (obj.get("analysis") or "").strip()
    if not analysis:
        raise GenerationError("Evaluation reply has no analysis.")
    return EvaluationResult(
        score=_clip_score(obj.get("score")),
        analysis=analysis,
        missing_points=to_str_list(obj.get("missingPoints")),
        ideal_answer=(obj.get("idealAnswer") or "").strip(),
    )


class InterviewGenerationService:
    def __init__(
        self,
        llm: LLMClient,
        *,
        prompts: Optional[PromptFactory] = None,
        model: Optional[str] = None,
    ):
        self.llm: LLMClient = llm
        self.prompts: PromptFactory = prompts or DefaultPromptFactory(
            language=config.OUTPUT_LANGUAGE
        )
        self.model = model or config.LLM_MODEL

        self.tokens_in: int = 0
        self.tokens_out: int = 0
        self.model_used: Optional[str] = None

    def _settings(self, kind: str) -> LLMSettings:
        return config.get_llm_settings(kind, model=self.model)

    async def _chat(self, messages: list[dict[str, str]], settings: LLMSettings) -> str:
        text, meta = await self.llm.chat(messages, settings)
        self.tokens_in += int(meta.get("tokens_in", 0))
        self.tokens_out += int(meta.get("tokens_out", 0))
        self.model_used = meta.get("model") or settings.model
        return (text or "").strip()

    async def generate_question(self, topic: Topic) -> str:
        messages = [
            {"role": "user", "content": self.prompts.question_instruction(topic=topic)}
        ]
        text = await self._chat(messages, self._settings("question"))
        if not text:
            raise GenerationError("Empty question from the generation service.")
        logger.info("Generated question for %s (%d chars)", topic.name, len(text))
        return text

    async def evaluate_answer(
        self, topic: Topic, question: str, answer: str
    ) -> EvaluationResult:
        messages = [
            {"role": "system", "content": self.prompts.build_evaluation_system()},
            {
                "role": "user",
                "content": self.prompts.evaluation_instruction(
                    topic=topic, question=question, answer=answer
                ),
            },
        ]
        text = await self._chat(messages, self._settings("evaluation"))
        result = parse_evaluation(text)
        logger.info("Evaluated answer for %s: score=%d", topic.name, result.score)
        return result

    async def explain_concept(self, topic: Topic, question: str, follow_up: str) -> str:
        messages = [
            {"role": "system", "content": self.prompts.build_mentor_system()},
            {
                "role": "user",
                "content": self.prompts.explanation_instruction(
                    topic=topic, question=question, follow_up=follow_up
                ),
            },
        ]
        text = await self._chat(messages, self._settings("explanation"))
        if not text:
            raise GenerationError("Empty explanation from the generation service.")
        return text
