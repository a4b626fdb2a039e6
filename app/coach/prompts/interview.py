"""Interview prompts (next question)"""

from __future__ import annotations

from ..models import Topic
from .common import few_shot_block, language_rule, topic_rules


def question_instruction(*, topic: Topic, language: str) -> str:
    core = (
        "Act as a strict Senior Technical Lead or Architect at a top-tier tech "
        "company.\n"
        "I am a candidate interviewing for a Senior Backend Engineer position.\n\n"
        "Generate a challenging, scenario-based interview question focusing on: "
        f"{topic.value}.\n\n"
        f"{topic_rules(topic)}\n"
        "Keep the question concise but detailed enough to set the context.\n"
        "Do not provide the answer yet.\n"
        f"{language_rule(language)}"
    )
    return core + few_shot_block(topic)
