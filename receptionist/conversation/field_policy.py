"""
Capture policy for the one-field-per-turn data collection states.

Each collection state maps to a ``FieldDefinition``: which record field it
fills, how to extract it, and what to say. A ``RetryCounter`` per field
tracks failures. Failures only change the re-prompt wording; once a field
has failed more than ``max_retries`` times the raw utterance is accepted
verbatim so the call always moves forward.

Usage:
    definition = FIELD_DEFINITIONS[ConversationState.APPOINTMENT_PHONE]
    attempt = attempt_field(definition, RetryCounter(), "five five five 1234567")
    if attempt.captured:
        record.phone = attempt.value
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional

from receptionist.config import settings
from receptionist.conversation.extractors import (
    extract_email,
    extract_free_text,
    extract_name,
    extract_phone,
)
from receptionist.conversation.state_machine import ConversationState
from receptionist.prompts import spoken_lines as lines

logger = logging.getLogger(__name__)

S = ConversationState


@dataclass
class RetryCounter:
    """Failure count for one field."""

    failures: int = 0

    def record_failure(self) -> int:
        self.failures += 1
        return self.failures

    def reset(self) -> None:
        self.failures = 0

    @property
    def escalated(self) -> bool:
        """True once a directive re-prompt is warranted."""
        return self.failures > 0

    def should_force_accept(self, max_retries: int) -> bool:
        return self.failures > max_retries


@dataclass(frozen=True)
class FieldDefinition:
    """Schema for a single field collected in one state."""

    field: str
    display_name: str
    extractor: Callable[[str], Optional[str]]
    prompt: str
    retry_prompt: str
    max_retries: int = 2


@dataclass(frozen=True)
class FieldAttempt:
    """Outcome of one capture attempt."""

    value: Optional[str]
    forced: bool = False

    @property
    def captured(self) -> bool:
        return self.value is not None


def attempt_field(
    definition: FieldDefinition,
    counter: RetryCounter,
    utterance: str,
) -> FieldAttempt:
    """Run the extractor, applying the escalate-then-force-accept policy."""
    value = definition.extractor(utterance)
    if value is not None:
        counter.reset()
        return FieldAttempt(value)

    counter.record_failure()
    raw = " ".join(utterance.split())
    if raw and counter.should_force_accept(definition.max_retries):
        logger.info(
            "Accepting raw %s after %d failed attempts",
            definition.display_name, counter.failures,
        )
        counter.reset()
        return FieldAttempt(raw, forced=True)
    return FieldAttempt(None)


_free_text = partial(extract_free_text, min_length=settings.conversation.min_free_text_length)

_FIRST_NAME = dict(
    field="first_name", display_name="first name", extractor=extract_name,
    prompt=lines.FIRST_NAME, retry_prompt=lines.FIRST_NAME_RETRY,
)
# Surnames are often unusual words; take what we hear on the first miss.
_LAST_NAME = dict(
    field="last_name", display_name="last name", extractor=extract_name,
    prompt=lines.LAST_NAME, retry_prompt=lines.LAST_NAME_RETRY, max_retries=0,
)
_PHONE = dict(
    field="phone", display_name="phone number", extractor=extract_phone,
    prompt=lines.PHONE, retry_prompt=lines.PHONE_RETRY,
)
_EMAIL = dict(
    field="email_candidate", display_name="email address", extractor=extract_email,
    prompt=lines.EMAIL, retry_prompt=lines.EMAIL_RETRY,
)

FIELD_DEFINITIONS: dict[ConversationState, FieldDefinition] = {
    S.APPOINTMENT_FIRST_NAME: FieldDefinition(**_FIRST_NAME),
    S.APPOINTMENT_LAST_NAME: FieldDefinition(**_LAST_NAME),
    S.APPOINTMENT_PHONE: FieldDefinition(**_PHONE),
    S.APPOINTMENT_EMAIL: FieldDefinition(**_EMAIL),
    S.APPOINTMENT_REFERRAL: FieldDefinition(
        field="referral_source", display_name="referral source", extractor=_free_text,
        prompt=lines.REFERRAL, retry_prompt=lines.REFERRAL_RETRY, max_retries=1,
    ),
    S.APPOINTMENT_CALL_REASON: FieldDefinition(
        field="call_reason", display_name="call reason", extractor=_free_text,
        prompt=lines.CALL_REASON, retry_prompt=lines.CALL_REASON_RETRY, max_retries=1,
    ),
    S.MESSAGE_FIRST_NAME: FieldDefinition(**_FIRST_NAME),
    S.MESSAGE_LAST_NAME: FieldDefinition(**_LAST_NAME),
    S.MESSAGE_PHONE: FieldDefinition(**_PHONE),
    S.MESSAGE_EMAIL: FieldDefinition(**_EMAIL),
    S.MESSAGE_CONTENT: FieldDefinition(
        field="message_content", display_name="message", extractor=_free_text,
        prompt=lines.MESSAGE_CONTENT, retry_prompt=lines.MESSAGE_CONTENT_RETRY, max_retries=1,
    ),
}

# Fields cleared when the caller rejects the final summary.
APPOINTMENT_FIELDS = (
    "first_name", "last_name", "phone", "email_candidate", "email",
    "prior_client", "referral_source", "call_reason",
)
MESSAGE_FIELDS = (
    "first_name", "last_name", "phone", "email_candidate", "email", "message_content",
)
