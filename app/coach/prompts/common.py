"""Shared prompt helpers used across prompt modules."""

from __future__ import annotations
from textwrap import dedent

from ..models import Topic


def topic_rules(topic: Topic) -> str:
    if topic == Topic.CODING_ABILITY:
        return dedent(
            """\
            Generate a coding problem similar to LeetCode Medium/Hard or a practical
            utility implementation (e.g. a RateLimiter, an LRU cache or a thread pool).
            - Require the candidate to write actual code.
            - Focus on correctness, edge cases, and time/space complexity.
            """
        )
    if topic == Topic.DESIGN_PATTERNS:
        return dedent(
            """\
            Describe a real-world software design problem (e.g. payment processing,
            a notification system, refactoring legacy code).
            - Ask the candidate which design patterns solve it and why.
            - Do not ask for plain definitions like "What is a Singleton?".
            """
        )
    return dedent(
        """\
        Rules:
        - Do NOT ask simple definition questions (e.g. "What is a HashMap?").
        - Ask about production scenarios, debugging, trade-offs, architecture,
          or performance optimization.
        - The question should require a deep understanding of internals.
        """
    )


_FEWSHOT_BY_TOPIC = {
    Topic.JAVA_CORE: [
        "A payment service shows p99 spikes every few minutes and GC logs show long "
        "mixed collections. How would you diagnose and fix it?",
    ],
    Topic.REDIS: [
        "A hot key on a product page saturates one Redis shard during a flash sale. "
        "How do you mitigate it without serving stale prices?",
    ],
    Topic.MYSQL: [
        "An order table with 500M rows needs a new index on a live system. "
        "How do you roll it out and what can go wrong?",
    ],
    Topic.KAFKA: [
        "A consumer group keeps rebalancing and lag grows during peak hours. "
        "Walk me through your investigation.",
    ],
    Topic.DISTRIBUTED_SYSTEMS: [
        "Design idempotent order creation across three services when the client "
        "retries on timeout.",
    ],
}


def few_shot_block(topic: Topic, *, max_examples: int = 2) -> str:
    examples = _FEWSHOT_BY_TOPIC.get(topic, [])[:max_examples]
    if not examples:
        return ""
    lines = ["Question style exemplars. Do not copy verbatim:"]
    lines += [f"- {q}" for q in examples]
    return "\n" + "\n".join(lines)


def language_rule(language: str) -> str:
    return f"OUTPUT MUST BE IN {language.upper()}."
