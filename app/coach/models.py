"""
Canonical data shapes, shared truth for typing/serialization between layers.

Typical contents:
- Topic, Sender, MessageKind, Phase enums.
- EvaluationResult, Message, HistorySession (with to_dict/from_dict for the
  history blob).
- LLMSettings (model, temperature, top_p, max_tokens).

Testing: Mostly types; serialization is covered by the history store tests.
"""

from __future__ import annotations
import itertools
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Topic(str, Enum):
    JAVA_CORE = "Java Core & Concurrency"
    SPRING_BOOT = "Spring Boot & Frameworks"
    REDIS = "Redis & Caching Strategies"
    MYSQL = "MySQL & Tuning"
    MONGO = "MongoDB & NoSQL"
    KAFKA = "Kafka & Message Queues"
    ELASTICSEARCH = "Elasticsearch"
    DISTRIBUTED_SYSTEMS = "Distributed Systems Design"
    ALGORITHMS = "Algorithms & Data Structures"
    DESIGN_PATTERNS = "Design Patterns & Refactoring"
    CODING_ABILITY = "Hands-on Coding"


class Sender(str, Enum):
    AI = "AI"
    USER = "USER"


class MessageKind(str, Enum):
    PLAIN_TEXT = "TEXT"
    EVALUATION = "EVALUATION"


class Phase(str, Enum):
    IDLE = "IDLE"
    GENERATING_QUESTION = "GENERATING_QUESTION"
    AWAITING_ANSWER = "AWAITING_ANSWER"
    EVALUATING = "EVALUATING"
    EXPLAINING = "EXPLAINING"
    REVIEWING = "REVIEWING"

    @property
    def in_flight(self) -> bool:
        return self in IN_FLIGHT_PHASES


IN_FLIGHT_PHASES = frozenset(
    {Phase.GENERATING_QUESTION, Phase.EVALUATING, Phase.EXPLAINING}
)

_id_seq = itertools.count()


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    """Opaque id that sorts in creation order within one process."""
    return f"{now_ms():013d}-{next(_id_seq):06d}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class EvaluationResult:
    score: int
    analysis: str
    missing_points: tuple[str, ...] = ()
    ideal_answer: str = ""

    def __post_init__(self):
        object.__setattr__(self, "score", max(0, min(100, int(self.score))))
        object.__setattr__(self, "missing_points", tuple(self.missing_points))

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "analysis": self.analysis,
            "missingPoints": list(self.missing_points),
            "idealAnswer": self.ideal_answer,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EvaluationResult":
        return cls(
            score=data.get("score", 0),
            analysis=data.get("analysis", ""),
            missing_points=data.get("missingPoints") or (),
            ideal_answer=data.get("idealAnswer", ""),
        )


@dataclass(frozen=True)
class Message:
    sender: Sender
    content: str
    kind: MessageKind = MessageKind.PLAIN_TEXT
    evaluation: Optional[EvaluationResult] = None
    id: str = field(default_factory=new_id)
    timestamp: int = field(default_factory=now_ms)

    @property
    def is_ai_text(self) -> bool:
        return self.sender == Sender.AI and self.kind == MessageKind.PLAIN_TEXT

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "sender": self.sender.value,
            "type": self.kind.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.evaluation is not None:
            data["evaluation"] = self.evaluation.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        evaluation = data.get("evaluation")
        return cls(
            id=str(data["id"]),
            sender=Sender(data["sender"]),
            kind=MessageKind(data.get("type", MessageKind.PLAIN_TEXT.value)),
            content=data.get("content", ""),
            evaluation=EvaluationResult.from_dict(evaluation) if evaluation else None,
            timestamp=int(data.get("timestamp", 0)),
        )


@dataclass
class HistorySession:
    id: str
    topic: Topic
    messages: list[Message]
    start_time: int = field(default_factory=now_ms)
    preview: str = ""
    phase: Optional[Phase] = None
    current_question: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic.name,
            "startTime": self.start_time,
            "preview": self.preview,
            "phase": self.phase.name if self.phase else None,
            "currentQuestion": self.current_question,
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistorySession":
        phase = data.get("phase")
        return cls(
            id=str(data["id"]),
            topic=Topic[data["topic"]],
            start_time=int(data["startTime"]),
            preview=data.get("preview") or "",
            phase=Phase[phase] if phase else None,
            current_question=data.get("currentQuestion"),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
        )


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    top_p: float = 1.0
    max_tokens: int = 1024
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    response_format: Optional[dict] = None


@dataclass(frozen=True)
class RecognitionResult:
    """One segment of a speech-recognition batch."""

    transcript: str
    is_final: bool = False
