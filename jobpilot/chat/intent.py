"""Intent classification for routing user messages between agents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

SCORING_KEYWORDS: tuple[str, ...] = (
    "score",
    "analyze",
    "match",
    "fit",
    "rate",
    "evaluate",
    "assess",
    "rank",
    "priority",
    "compare",
)


@dataclass(frozen=True)
class Intent:
    wants_scoring: bool


class IntentClassifier(Protocol):
    def classify(self, text: str) -> Intent:
        ...


class KeywordIntentClassifier:
    """Case-insensitive substring match against a fixed scoring vocabulary.

    Deliberately crude: "profit" matches "fit". The router's decision table
    turns a false positive into a harmless redirect.
    """

    def __init__(self, keywords: tuple[str, ...] = SCORING_KEYWORDS) -> None:
        self._keywords = tuple(k.lower() for k in keywords)

    def classify(self, text: str) -> Intent:
        lowered = (text or "").strip().lower()
        if not lowered:
            return Intent(wants_scoring=False)
        return Intent(wants_scoring=any(k in lowered for k in self._keywords))
