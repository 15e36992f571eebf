"""Recognizer results shared by intent recognizers such as QnA Maker."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .turn_context import TurnContext


@dataclass
class IntentScore:
    score: float = 0.0
    properties: dict[str, Any] = field(default_factory=dict)


class TopIntent(NamedTuple):
    intent: str
    score: float


@dataclass
class RecognizerResult:
    """Outcome of running a recognizer over an utterance."""

    text: str | None = None
    altered_text: str | None = None
    intents: dict[str, IntentScore] | None = None
    entities: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)

    def get_top_scoring_intent(self) -> TopIntent:
        """Return the highest scoring intent.

        Raises:
            ValueError: If the result carries no intents.
        """
        if self.intents is None:
            raise ValueError("RecognizerResult.intents cannot be None")

        top_intent = TopIntent("", 0.0)
        for intent_name, intent_score in self.intents.items():
            score = intent_score.score if intent_score is not None else 0.0
            if score > top_intent.score:
                top_intent = TopIntent(intent_name, score)
        return top_intent


class Recognizer(ABC):
    @abstractmethod
    async def recognize(self, turn_context: TurnContext) -> RecognizerResult:
        pass
