"""
Intent classifier adapter.

The external oracle only knows four labels (appointment, message,
speak_to_person, unclear). The keyword fallback knows the full set and is
the only source of office-hours and callback intents, so it is consulted
whenever the oracle is missing, fails, times out, is unsure, or says
"unclear".

Usage:
    classifier = IntentClassifier(oracle=OpenAIIntentOracle(...))
    result = await classifier.classify("can I speak to someone")
    assert result.intent == Intent.INQUIRY
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from receptionist.schemas.call_schema import Intent

logger = logging.getLogger(__name__)

ORACLE_LABELS = ("appointment", "message", "speak_to_person", "unclear")

ORACLE_LABEL_TO_INTENT: dict[str, Intent] = {
    "appointment": Intent.APPOINTMENT,
    "message": Intent.MESSAGE,
    "speak_to_person": Intent.INQUIRY,
    "unclear": Intent.UNCLEAR,
}


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# Checked top to bottom. "Can I talk to someone about booking" is an
# inquiry, and "what time can I book" is an office-hours question.
KEYWORD_RULES: list[tuple[re.Pattern[str], Intent]] = [
    (
        _rx(
            r"inquir|question|information|tell me about|what do you|ask about|tax services|"
            r"speak to|speak with|talk to|talk with|someone|person|representative|human|"
            r"give me a name|looking for"
        ),
        Intent.INQUIRY,
    ),
    (
        _rx(r"office hours|when.*open|what time|\bhours\b|\bopen\b|\btimes\b|available times"),
        Intent.OFFICE_HOURS_QUESTION,
    ),
    (
        _rx(
            r"appointment|\bbook|schedule|consultation|make.*appointment|set up|meeting|"
            r"\bslot\b"
        ),
        Intent.APPOINTMENT,
    ),
    (
        _rx(r"i'll call back|call you back|call back later|i will call back|calling back"),
        Intent.CALLBACK,
    ),
    (_rx(r"message|leave.*message|voice ?mail"), Intent.MESSAGE),
]


def classify_by_keywords(utterance: Optional[str]) -> Intent:
    """Deterministic fallback over the full intent vocabulary."""
    if not utterance:
        return Intent.UNCLEAR
    for pattern, intent in KEYWORD_RULES:
        if pattern.search(utterance):
            return intent
    return Intent.UNCLEAR


@dataclass(frozen=True)
class OracleVerdict:
    """Raw answer from the intent oracle."""

    label: str
    confidence: float


@dataclass(frozen=True)
class IntentResult:
    intent: Intent
    confidence: float
    source: str  # "oracle" or "keywords"


class IntentOracle(ABC):
    """External classifier constrained to ``ORACLE_LABELS``."""

    @abstractmethod
    async def classify(self, text: str) -> OracleVerdict:
        """Return a label from ORACLE_LABELS with a confidence in [0, 1]."""


class IntentClassifier:
    """Combines the oracle with the keyword fallback."""

    def __init__(
        self,
        oracle: Optional[IntentOracle] = None,
        confidence_threshold: float = 0.6,
        timeout_sec: float = 4.0,
    ) -> None:
        self._oracle = oracle
        self._threshold = confidence_threshold
        self._timeout = timeout_sec

    async def classify(self, utterance: str) -> IntentResult:
        verdict = await self._ask_oracle(utterance)
        if verdict is not None:
            intent = ORACLE_LABEL_TO_INTENT.get(verdict.label)
            if intent is None:
                logger.warning("Oracle returned unknown label %r", verdict.label)
            elif verdict.confidence < self._threshold:
                logger.info(
                    "Oracle confidence %.2f below %.2f for %s, using keywords",
                    verdict.confidence, self._threshold, verdict.label,
                )
            elif intent != Intent.UNCLEAR:
                return IntentResult(intent, verdict.confidence, "oracle")

        intent = classify_by_keywords(utterance)
        logger.debug("Keyword fallback classified %r as %s", utterance, intent.value)
        return IntentResult(intent, 1.0 if intent != Intent.UNCLEAR else 0.0, "keywords")

    async def _ask_oracle(self, utterance: str) -> Optional[OracleVerdict]:
        if self._oracle is None or not utterance.strip():
            return None
        try:
            return await asyncio.wait_for(self._oracle.classify(utterance), self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Intent oracle timed out after %.1fs", self._timeout)
        except Exception as exc:
            logger.warning("Intent oracle failed: %s", exc)
        return None
