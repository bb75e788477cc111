"""
Slot negotiation: what did the caller say about the slot we offered?

``resolve_response`` is pure. It never counts rejections or touches the
call record; the controller applies the rejection limit to its result.

Precedence, first match wins:
    1. ordinal reference ("the second one", "option two")
    2. affirmative word as a whole token, not negated ("yes", "sounds good")
    3. concrete time expression ("tomorrow", "Thursday", "at 3")
    4. negative word as a whole token ("no", "doesn't work")
    5. otherwise ambiguous
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from receptionist.conversation.time_preference import SearchWindow, contains_time_expression
from receptionist.schemas.booking_schema import Slot

logger = logging.getLogger(__name__)


class DecisionKind(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    TIME_PREFERENCE = "time_preference"
    AMBIGUOUS = "ambiguous"


@dataclass(frozen=True)
class SlotDecision:
    """Result of reading a caller's answer to a slot offer."""

    kind: DecisionKind
    slot: Optional[Slot] = None
    preference: Optional[str] = None


_ORDINAL_WORDS = {"first": 0, "second": 1, "third": 2, "fourth": 3, "fifth": 4}
_ORDINAL_NUMBERS = {
    "one": 0, "two": 1, "three": 2, "four": 3, "five": 4,
    "1": 0, "2": 1, "3": 2, "4": 3, "5": 4,
}

_ORDINAL_WORD = re.compile(r"\b(first|second|third|fourth|fifth)\b(?!\s+thing)")
_ORDINAL_OPTION = re.compile(
    r"\b(?:option|number|slot|choice)\s+(one|two|three|four|five|[1-5])\b"
)
_AFFIRMATIVE = re.compile(
    r"\b(yes|yeah|yep|yup|sure|ok|okay|fine|good|great|perfect|absolutely|definitely|"
    r"that works|sounds good|works for me|let's do it|book it)\b"
)
_NEGATED_AFFIRMATIVE = re.compile(
    r"\b(not|isn't|doesn't|don't|no)\s+(so\s+|really\s+|very\s+)?"
    r"(good|great|fine|perfect|okay|ok|sure)\b"
)
_NEGATIVE = re.compile(
    r"\b(no|nope|nah|not|don't|none|neither|doesn't work|won't work|can't|cannot|"
    r"no thanks)\b"
)


def _ordinal_index(text: str) -> Optional[int]:
    option = _ORDINAL_OPTION.search(text)
    if option:
        return _ORDINAL_NUMBERS[option.group(1)]
    word = _ORDINAL_WORD.search(text)
    if word:
        return _ORDINAL_WORDS[word.group(1)]
    return None


def resolve_response(utterance: Optional[str], offered_slots: list[Slot]) -> SlotDecision:
    """Classify a reply to a slot offer against the slots offered so far."""
    text = (utterance or "").lower().strip()
    if not text or not offered_slots:
        return SlotDecision(DecisionKind.AMBIGUOUS)

    index = _ordinal_index(text)
    if index is not None and index < len(offered_slots):
        return SlotDecision(DecisionKind.ACCEPT, slot=offered_slots[index])

    if _AFFIRMATIVE.search(text) and not _NEGATED_AFFIRMATIVE.search(text):
        return SlotDecision(DecisionKind.ACCEPT, slot=offered_slots[0])

    if contains_time_expression(text):
        return SlotDecision(DecisionKind.TIME_PREFERENCE, preference=utterance.strip())

    if _NEGATIVE.search(text):
        return SlotDecision(DecisionKind.REJECT)

    return SlotDecision(DecisionKind.AMBIGUOUS)


def select_offers(
    slots: Iterable[Slot],
    window: SearchWindow,
    rejected_isos: Iterable[str] = (),
    limit: int = 5,
) -> list[Slot]:
    """Earliest slots inside the window that the caller hasn't already turned down."""
    rejected = set(rejected_isos)
    candidates = sorted(
        (s for s in slots if s.iso not in rejected and window.accepts(s.start)),
        key=lambda s: s.start,
    )
    if len(candidates) > limit:
        logger.debug("Trimming %d candidate slots to %d", len(candidates), limit)
    return candidates[:limit]
