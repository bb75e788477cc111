"""Render captured values so a text-to-speech engine reads them clearly."""

import re
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

SPOKEN_DOMAINS: dict[str, str] = {
    "gmail.com": "gmail dot com",
    "yahoo.com": "yahoo dot com",
    "hotmail.com": "hotmail dot com",
    "outlook.com": "outlook dot com",
    "aol.com": "A O L dot com",
    "icloud.com": "icloud dot com",
    "msn.com": "M S N dot com",
    "live.com": "live dot com",
    "comcast.net": "comcast dot net",
    "verizon.net": "verizon dot net",
    "att.net": "A T T dot net",
    "me.com": "me dot com",
    "mac.com": "mac dot com",
    "protonmail.com": "protonmail dot com",
    "mail.com": "mail dot com",
}

_SYMBOL_WORDS = {".": "dot", "-": "dash", "_": "underscore"}


def spell_characters(text: str) -> str:
    """Spell text one character at a time: "john.d" -> "J O H N dot D"."""
    spoken: list[str] = []
    for char in text:
        if char in _SYMBOL_WORDS:
            spoken.append(_SYMBOL_WORDS[char])
        elif char.isdigit():
            spoken.append(char)
        elif char.isalpha():
            spoken.append(char.upper())
    return " ".join(spoken)


def spell_email_for_speech(email: Optional[str]) -> str:
    """Spell the username letter by letter; say well-known domains as words.

    Examples:
        >>> spell_email_for_speech("john@gmail.com")
        'J O H N, at, gmail dot com'
        >>> spell_email_for_speech("a.b@firm.io")
        'A dot B, at, F I R M dot I O'
    """
    if not email:
        return "your email"

    cleaned = re.sub(r"[^a-z0-9@._-]", "", email.lower().strip())
    username, at, domain = cleaned.partition("@")
    if not at:
        return spell_characters(cleaned)

    spoken_domain = SPOKEN_DOMAINS.get(domain) or spell_characters(domain)
    return f"{spell_characters(username)}, at, {spoken_domain}"


def _digits_with_pauses(digits: str) -> str:
    return ". ".join(digits)


def format_phone_for_speech(phone: Optional[str]) -> str:
    """Speak a phone number digit by digit in 3-3-4 groups.

    Examples:
        >>> format_phone_for_speech("5551234567")
        '5. 5. 5. ... 1. 2. 3. ... 4. 5. 6. 7.'
        >>> format_phone_for_speech("15551234567")
        '1. ... 5. 5. 5. ... 1. 2. 3. ... 4. 5. 6. 7.'
    """
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return "your phone number"

    if len(digits) == 11 and digits.startswith("1"):
        return "1. ... " + format_phone_for_speech(digits[1:])
    if len(digits) == 10:
        groups = (digits[:3], digits[3:6], digits[6:])
        return ". ... ".join(_digits_with_pauses(g) for g in groups) + "."
    return _digits_with_pauses(digits) + "."


def format_slot_for_speech(start: datetime, timezone: str) -> str:
    """Long-form start time in the firm's timezone, with no end time.

    Example: "Tuesday, October 20 at 11:00 AM".
    """
    local = start.astimezone(ZoneInfo(timezone))
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local:%A}, {local:%B} {local.day} at {hour}:{local:%M} {meridiem}"
