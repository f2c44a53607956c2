"""
Canonical data shapes, shared truth for typing/validation between layers.

Typical contents:
- Speaker / Turn / Transcript (the ordered conversation history).
- TurnPhase (voice-interaction state of a training session).
- ScenarioId / Scenario (role-play configurations).
- FeedbackReport (post-session scoring result).
- LLMSettings (model, temperature, top_p, max_tokens).

Testing: Mostly types; Turn and Transcript validate themselves.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Iterator, Optional
from enum import Enum


class Speaker(str, Enum):
    TRAINEE = "user"
    CUSTOMER = "assistant"


class TurnPhase(str, Enum):
    INITIALIZING = "initializing"
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    SPEAKING = "speaking"
    UNSUPPORTED = "unsupported"


class ScenarioId(str, Enum):
    COLD_CALLING = "cold_calling"
    DEMO_PITCH = "demo_pitch"
    UPSELL = "upsell"

    @classmethod
    def parse(cls, value) -> "ScenarioId":
        """Return the matching scenario, or the default one for unknown ids."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.COLD_CALLING

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class ValidationError(ValueError):
    """User input rejected before any state change."""


class FeedbackError(RuntimeError):
    """Scoring collaborator could not be reached or errored."""


@dataclass(frozen=True)
class Turn:
    speaker: Speaker
    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("Turn text must be non-empty.")
        object.__setattr__(self, "speaker", Speaker(self.speaker))

    def to_message(self) -> dict[str, str]:
        return {"role": self.speaker.value, "content": self.text}

    @classmethod
    def from_message(cls, message: dict) -> "Turn":
        return cls(speaker=Speaker(message["role"]), text=message["content"])


class Transcript:
    """Append-only, ordered history of turns for one session."""

    def __init__(self, turns: Optional[list[Turn]] = None) -> None:
        self._turns: list[Turn] = []
        for turn in turns or []:
            self.append(turn)

    def append(self, turn: Turn) -> None:
        if not isinstance(turn, Turn):
            raise TypeError(f"Expected Turn, got {type(turn)!r}")
        self._turns.append(turn)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __getitem__(self, idx: int) -> Turn:
        return self._turns[idx]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transcript):
            return NotImplemented
        return self._turns == other._turns

    def __repr__(self) -> str:
        return f"Transcript({self._turns!r})"

    def snapshot(self) -> tuple[Turn, ...]:
        """Immutable copy handed to collaborators."""
        return tuple(self._turns)

    def to_messages(self) -> list[dict[str, str]]:
        return [t.to_message() for t in self._turns]

    @classmethod
    def from_messages(cls, messages: list[dict]) -> "Transcript":
        return cls([Turn.from_message(m) for m in messages or []])

    def to_json(self) -> str:
        return json.dumps(self.to_messages(), ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "Transcript":
        return cls.from_messages(json.loads(text or "[]"))


@dataclass(frozen=True)
class CustomerProfile:
    role: str
    company: str
    challenges: tuple[str, ...]
    personality: str
    initial_mood: str


@dataclass(frozen=True)
class Scenario:
    id: ScenarioId
    title: str
    description: str
    customer_profile: CustomerProfile
    objectives: tuple[str, ...]
    directive: str
    opening_line: str
    fallback_line: str


@dataclass
class FeedbackReport:
    score: int
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    scenario_feedback: str = ""

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "recommendations": list(self.recommendations),
            "scenarioFeedback": self.scenario_feedback,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FeedbackReport":
        return cls(
            score=int(data.get("score", 0)),
            strengths=list(data.get("strengths") or []),
            improvements=list(data.get("improvements") or []),
            recommendations=list(data.get("recommendations") or []),
            scenario_feedback=data.get("scenarioFeedback")
            or data.get("scenario_feedback")
            or "",
        )


DEFAULT_FEEDBACK = FeedbackReport(
    score=75,
    strengths=[
        "Engaged in conversation with the customer",
        "Attempted to understand customer needs",
        "Maintained professional tone",
    ],
    improvements=[
        "Could ask more probing questions",
        "Should focus more on value proposition",
        "Could handle objections more effectively",
    ],
    recommendations=[
        "Practice active listening techniques",
        "Prepare stronger opening statements",
        "Study common objection handling methods",
    ],
    scenario_feedback=(
        "Overall, this was a good practice session. Focus on building rapport "
        "and clearly articulating value to improve your performance."
    ),
)


@dataclass(frozen=True)
class RecognitionSegment:
    text: str
    is_final: bool = False


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    top_p: float = 1.0
    max_tokens: int = 512
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    response_format: Optional[dict] = None


@dataclass(frozen=True)
class Price:
    input_per_1M: float
    output_per_1M: float
