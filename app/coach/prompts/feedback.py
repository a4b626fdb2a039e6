"""Feedback/coaching prompts: scoring and follow-up explanations."""

from __future__ import annotations
from textwrap import dedent

from ..models import Topic
from .common import language_rule


def build_evaluation_system(*, language: str) -> str:
    return (
        "You are a rigorous technical interviewer grading a Senior Backend "
        "Engineer candidate.\n\n"
        "Rules:\n"
        "- Be objective and concise.\n"
        "- Never invent facts absent from the candidate's answer.\n"
        "- High scores (85+) only for answers showing deep expertise, "
        "trade-offs and edge cases.\n"
        "- Return EXACTLY one JSON object and nothing else.\n"
        f"- {language_rule(language)}"
    )


def evaluation_instruction(*, topic: Topic, question: str, answer: str) -> str:
    schema = dedent(
        """\
        Output ONLY this JSON object (no code fences, no commentary):
        {
          "score": <integer 0..100>,
          "analysis": "<overall assessment, strengths and main weaknesses>",
          "missingPoints": ["<critical concept the candidate missed>", "..."],
          "idealAnswer": "<senior-level reference answer, code snippets if relevant>"
        }
        """
    )
    return (
        "Score the candidate's answer and review it in detail.\n\n"
        f"Topic: {topic.value}\n\n"
        f"Question:\n{question or '(not available)'}\n\n"
        f"Candidate answer:\n{answer or '(not available)'}\n\n"
        + schema
    )


def build_mentor_system(*, language: str) -> str:
    return (
        "You are a Senior Technical Mentor coaching a candidate who prepares for "
        "a senior backend interview.\n"
        "- Keep the explanation relevant to the interview question.\n"
        "- Use real production examples and code snippets (Java/SQL/etc) "
        "when helpful.\n"
        "- Give practical advice and common pitfalls in 3 to 6 paragraphs.\n"
        "- Be encouraging but technically precise.\n"
        f"- {language_rule(language)}"
    )


def explanation_instruction(*, topic: Topic, question: str, follow_up: str) -> str:
    return (
        f"The mock interview topic is: {topic.value}.\n"
        f'The previous interview question was: "{question}".\n\n'
        "The candidate has a follow-up question or needs clarification on a "
        f'concept: "{follow_up}".'
    )
