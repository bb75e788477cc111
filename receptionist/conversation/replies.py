"""
Ordered rule tables for short caller replies.

Each table is a list of (pattern, label) pairs checked top to bottom; the
first match wins. Keeping precedence in data makes it testable on its own
and keeps the controller free of scattered keyword checks.
"""

import re
from enum import Enum
from typing import Optional, TypeVar

LabelT = TypeVar("LabelT")


class Confirmation(str, Enum):
    """Answer to "is that correct?"."""

    YES = "yes"
    NO = "no"
    UNCLEAR = "unclear"


class FollowUp(str, Enum):
    """Answer to "would you like to leave a message?"."""

    BOOK = "book"
    MESSAGE = "message"
    DECLINE = "decline"
    UNCLEAR = "unclear"


class PriorClient(str, Enum):
    NEW = "new"
    RETURNING = "returning"
    UNCLEAR = "unclear"


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


BOOKING_WORDS = _rx(r"\b(appointment|book|booking|schedule|consultation|meeting)\b")

# Negatives first: "no, that's not right" must never read as a yes.
CONFIRMATION_RULES: list[tuple[re.Pattern[str], Confirmation]] = [
    (
        _rx(
            r"^(no|nope|nah)\b(?!\s+(problem|worries)\b)|"
            r"\b(not|isn't|is not|wasn't) (right|correct|quite|it|my)\b|"
            r"(?<!nothing )(?<!not )\b(wrong|incorrect)\b|\bmistake\b"
        ),
        Confirmation.NO,
    ),
    (_rx(r"^(yes|yeah|yep|yup|correct|right|sure|ok|okay)\b"), Confirmation.YES),
    (
        _rx(
            r"\b(that's right|that is right|that's correct|that is correct|all good|"
            r"sounds good|perfect|great|awesome|absolutely|definitely|exactly|correct)\b"
        ),
        Confirmation.YES,
    ),
]

FOLLOW_UP_RULES: list[tuple[re.Pattern[str], FollowUp]] = [
    (BOOKING_WORDS, FollowUp.BOOK),
    (_rx(r"\b(message|leave|voicemail|voice mail)\b"), FollowUp.MESSAGE),
    (
        _rx(
            r"^(no|nope|nah)\b|\b(no thanks|no thank you|later|call back|bye|goodbye|"
            r"that's all|that's it|not now)\b"
        ),
        FollowUp.DECLINE,
    ),
    (_rx(r"\b(yes|yeah|yep|yup|sure|ok|okay|please)\b"), FollowUp.MESSAGE),
]

PRIOR_CLIENT_RULES: list[tuple[re.Pattern[str], PriorClient]] = [
    (_rx(r"\b(new|first time|never been|never worked|not a client|not yet|no|nope)\b"),
     PriorClient.NEW),
    (_rx(r"\b(yes|yeah|yep|returning|previous|been here|came before|existing|before|"
         r"worked with)\b"),
     PriorClient.RETURNING),
]


def match_rules(
    text: Optional[str],
    rules: list[tuple[re.Pattern[str], LabelT]],
    default: LabelT,
) -> LabelT:
    """Return the label of the first rule whose pattern occurs in ``text``."""
    if not text:
        return default
    cleaned = text.strip()
    for pattern, label in rules:
        if pattern.search(cleaned):
            return label
    return default


def classify_confirmation(text: Optional[str]) -> Confirmation:
    return match_rules(text, CONFIRMATION_RULES, Confirmation.UNCLEAR)


def classify_follow_up(text: Optional[str]) -> FollowUp:
    return match_rules(text, FOLLOW_UP_RULES, FollowUp.UNCLEAR)


def classify_prior_client(text: Optional[str]) -> PriorClient:
    return match_rules(text, PRIOR_CLIENT_RULES, PriorClient.UNCLEAR)


def mentions_booking(text: Optional[str]) -> bool:
    return bool(text and BOOKING_WORDS.search(text))
