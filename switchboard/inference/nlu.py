"""Intent classification collaborator used by TextInference rules."""

from abc import ABC, abstractmethod
from typing import Any

from switchboard.inference.models import IntentResult


class IntentClassifier(ABC):
    """Classifies free text into an intent with a confidence score."""

    @abstractmethod
    async def classify(self, bot_name: str, text: str, session_id: str) -> IntentResult:
        """Classify text using the named bot.

        Args:
            bot_name: Configured bot (model) name
            text: Caller input
            session_id: Contact id, for bots that keep conversation state

        Returns:
            Best matching intent and its confidence
        """
        pass


class MockIntentClassifier(IntentClassifier):
    """Intent classifier returning configured results.

    Text without a configured result maps to the fallback intent with
    zero confidence.
    """

    def __init__(
        self,
        results: dict[str, IntentResult] | None = None,
        fallback_intent: str = "FallbackIntent",
    ) -> None:
        self._results = results or {}
        self._fallback_intent = fallback_intent
        self._call_history: list[dict[str, Any]] = []

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    def set_result(self, text: str, intent: str, confidence: float) -> None:
        """Set the classification for a specific text."""
        self._results[text] = IntentResult(intent=intent, confidence=confidence)

    async def classify(self, bot_name: str, text: str, session_id: str) -> IntentResult:
        self._call_history.append({
            "bot_name": bot_name,
            "text": text,
            "session_id": session_id,
        })
        return self._results.get(text, IntentResult(intent=self._fallback_intent, confidence=0.0))
