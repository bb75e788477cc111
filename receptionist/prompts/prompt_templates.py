"""Read-back summaries built from the details a caller has given."""

from typing import Optional

from receptionist.conversation.speech_format import (
    format_phone_for_speech,
    spell_email_for_speech,
)


def build_email_read_back(template: str, email: Optional[str]) -> str:
    """Fill the email read-back line with a letter-by-letter rendering."""
    return template.format(spelled=spell_email_for_speech(email))


def build_confirmation_summary(
    first_name: Optional[str],
    last_name: Optional[str],
    phone: Optional[str],
    email: Optional[str],
    slot_text: Optional[str] = None,
) -> str:
    """Build the final "is all of that correct?" read-back."""
    name = " ".join(part for part in (first_name, last_name) if part) or "not provided"
    parts = [
        "Let me confirm your details.",
        f"Your name is {name}.",
        f"Your phone number is {format_phone_for_speech(phone)}",
        f"Your email is {spell_email_for_speech(email)}.",
    ]
    if slot_text:
        parts.append(f"Your appointment is scheduled for {slot_text}.")
    parts.append("Is all of that correct?")
    return " ".join(parts)


def build_message_summary(
    reason: Optional[str],
    first_name: Optional[str],
    last_name: Optional[str],
    phone: Optional[str],
    email: Optional[str],
) -> str:
    """One-line summary attached to the message notification."""
    name = " ".join(part for part in (first_name, last_name) if part) or "Unknown caller"
    return (
        f"Caller requested a callback. Reason: {reason or 'not given'}. "
        f"Details: {name}, {phone or 'no phone'}, {email or 'no email'}."
    )
