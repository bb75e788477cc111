"""
Field extractors for noisy speech-to-text transcripts.

Each extractor takes the raw transcript of one caller turn and returns a
candidate value, or ``None`` when nothing usable could be parsed. They
never raise and never touch the call record; the controller decides what
a ``None`` means for the conversation.

Usage:
    extract_name("Um, my name is J. O. H. N.")       # -> "John"
    extract_email("john at gmail dot com")           # -> "john@gmail.com"
    extract_phone("555 123 4567, 555 123 4567")      # -> "5551234567"
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

MAX_NAME_WORDS = 3
MIN_USABLE_PHONE_DIGITS = 7
FULL_PHONE_DIGITS = 10
LONG_DISTANCE_PREFIX = "1"
SPELLED_EMAIL_MIN_TOKENS = 3


# --------------------------------------------------------------------------- #
# Names
# --------------------------------------------------------------------------- #

_FILLER = re.compile(r"^(sure|okay|ok|yes|yeah|um|uh|well)(,\s*|\s+|$)", re.IGNORECASE)
_NAME_LEAD_IN = re.compile(
    r"^(my (first |last )?name is|the name is|it's|it is|i'm|i am|this is|call me)\b\s*",
    re.IGNORECASE,
)
_SENTENCE_MARKERS = re.compile(
    r"\b(would like|want to|need to|have to|going to|trying to|call me back|"
    r"call back|about the|about my|someone|please)\b",
    re.IGNORECASE,
)
_STARTS_WITH_I = re.compile(r"^i(\s|$)", re.IGNORECASE)
# "J-O-H-N": a hyphen between two single letters separates spelled letters.
_SPELLED_HYPHEN = re.compile(r"\b(\w)-(?=\w\b)")


def _strip_fillers(text: str, pattern: re.Pattern[str] = _FILLER) -> str:
    previous = None
    while previous != text:
        previous = text
        text = pattern.sub("", text, count=1)
    return text


def _join_spelled_runs(tokens: list[str]) -> list[str]:
    """Collapse runs of single letters ("j o h n") into one word."""
    joined: list[str] = []
    run: list[str] = []
    for token in tokens + [""]:
        if len(token) == 1:
            run.append(token)
            continue
        if len(run) > 1:
            joined.append("".join(run).lower())
        else:
            joined.extend(run)
        run = []
        if token:
            joined.append(token)
    return joined


def _looks_spelled(tokens: list[str]) -> bool:
    singles = sum(1 for t in tokens if len(t) == 1)
    return len(tokens) > 2 and singles > len(tokens) / 2


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def extract_name(text: Optional[str]) -> Optional[str]:
    """Pull a personal name out of a transcript, or None if it isn't one."""
    if not text or not text.strip():
        return None

    raw = text.strip()
    if "?" in raw or _SENTENCE_MARKERS.search(raw):
        logger.debug("Name rejected, reads like a sentence: %r", raw)
        return None

    name = _strip_fillers(raw)
    name = _NAME_LEAD_IN.sub("", name, count=1)
    name = re.sub(r"[.,!;:]+$", "", name)
    name = re.sub(r"[.,]\s*", " ", name)
    name = _SPELLED_HYPHEN.sub(r"\1 ", name)
    name = re.sub(r"[^\w\s'-]", "", name)
    name = re.sub(r"\s+", " ", name).strip()
    if not name:
        logger.debug("Name rejected after cleanup: %r", raw)
        return None

    tokens = name.split(" ")
    if _looks_spelled(tokens):
        tokens = _join_spelled_runs(tokens)
    elif _STARTS_WITH_I.match(name):
        logger.debug("Name rejected, starts with a pronoun: %r", raw)
        return None

    tokens = tokens[:MAX_NAME_WORDS]
    return " ".join(_capitalize(t) for t in tokens)


# --------------------------------------------------------------------------- #
# Email
# --------------------------------------------------------------------------- #

_EMAIL_FILLER = re.compile(
    r"^((sure|okay|ok|yes|yeah|um|uh|so|well)\b,?|it's\b|it is\b|my email( address)? is\b|"
    r"the email is\b|that's\b|that is\b)\s*",
)

# Spelled letters the transcriber rendered as words. Applied only when the
# username looks spelled out, so a plain "mike at gmail dot com" survives.
PHONETIC_LETTERS: dict[str, str] = {
    "alpha": "a", "bravo": "b", "charlie": "c", "delta": "d", "echo": "e",
    "foxtrot": "f", "golf": "g", "hotel": "h", "india": "i", "juliet": "j",
    "kilo": "k", "lima": "l", "mike": "m", "november": "n", "oscar": "o",
    "papa": "p", "quebec": "q", "romeo": "r", "sierra": "s", "tango": "t",
    "uniform": "u", "victor": "v", "whiskey": "w", "xray": "x", "x-ray": "x",
    "yankee": "y", "zulu": "z",
    "ay": "a", "aye": "a", "eh": "a",
    "bee": "b", "be": "b",
    "see": "c", "sea": "c", "cee": "c",
    "dee": "d", "de": "d",
    "ee": "e", "eee": "e",
    "eff": "f", "ef": "f",
    "gee": "g", "ge": "g", "ji": "g",
    "aitch": "h", "ach": "h", "eich": "h",
    "eye": "i", "ai": "i",
    "jay": "j", "jey": "j",
    "kay": "k", "key": "k", "kei": "k",
    "el": "l", "ell": "l",
    "em": "m", "emm": "m",
    "en": "n", "enn": "n",
    "oh": "o", "owe": "o",
    "pee": "p", "pe": "p",
    "cue": "q", "que": "q", "queue": "q",
    "are": "r", "ar": "r", "arr": "r",
    "ess": "s", "es": "s",
    "tee": "t", "te": "t", "tea": "t",
    "you": "u", "yu": "u", "ewe": "u",
    "vee": "v", "ve": "v",
    "double you": "w", "double u": "w", "dub": "w", "dubya": "w",
    "ex": "x", "ecks": "x",
    "why": "y", "wye": "y",
    "zee": "z", "zed": "z",
    "zero": "0", "one": "1", "two": "2", "too": "2", "to": "2",
    "three": "3", "four": "4", "for": "4", "fore": "4",
    "five": "5", "six": "6", "seven": "7", "eight": "8", "ate": "8",
    "nine": "9", "niner": "9",
}

_PHONETIC_PATTERN = re.compile(
    r"\b("
    + "|".join(re.escape(k) for k in sorted(PHONETIC_LETTERS, key=len, reverse=True))
    + r")\b"
)

COMMON_EMAIL_PROVIDERS = (
    "gmail", "yahoo", "hotmail", "outlook", "aol", "icloud", "msn", "live",
    "comcast", "verizon", "att", "protonmail", "proton", "mail",
)

_DOMAIN_CORRECTION = re.compile(
    r"@?\b(" + "|".join(COMMON_EMAIL_PROVIDERS) + r")\s*(?:\.|\bdot\b)\s*(com|net|org)\b"
)


def _username_token_count(text: str) -> int:
    username = re.split(r"\bat\b|@", text, maxsplit=1)[0]
    return len(username.split())


def extract_email(text: Optional[str]) -> Optional[str]:
    """Normalize a spoken or spelled email address.

    Only the presence of ``@`` is required; a missing or odd domain is
    left for the read-back confirmation to catch.
    """
    if not text or not text.strip():
        return None

    email = _strip_fillers(text.lower().strip(), _EMAIL_FILLER)

    # Pauses while spelling come back as ". " and "," between letters.
    email = re.sub(r"\.\s+", " ", email)
    email = re.sub(r",\s*", " ", email)
    email = re.sub(r"\s+\.", " ", email)
    email = re.sub(r"^\.+", "", email)

    if _username_token_count(email) >= SPELLED_EMAIL_MIN_TOKENS:
        email = _PHONETIC_PATTERN.sub(lambda m: PHONETIC_LETTERS[m.group(1)], email)

    email = re.sub(r"\s*\bunderscore\b\s*", "_", email)
    email = re.sub(r"\s*\b(dash|hyphen)\b\s*", "-", email)
    email = re.sub(r"\s*\bat\b\s*", "@", email)
    email = re.sub(r"\s*\b(dot|period|point)\b\s*", ".", email)

    tokens = email.split()
    if len(tokens) > 3 and sum(1 for t in tokens if len(t) == 1) > len(tokens) / 2:
        tokens = [t.replace(".", "") if len(t) <= 2 else t for t in tokens]
        email = "".join(tokens)

    email = re.sub(r"\s+", "", email)

    if "@" in email:
        username, _, domain = email.partition("@")
        if re.fullmatch(r"[a-z](\.[a-z])+", username) or re.search(r"\.[a-z]\.", username):
            username = username.replace(".", "")
        email = f"{username}@{domain}"

    email = email.strip(".")
    email = re.sub(r"@{2,}", "@", email)
    email = re.sub(r"\.{2,}", ".", email)
    email = email.replace("@.", "@").replace(".@", "@")
    email = re.sub(r"[^a-z0-9@._-]", "", email)

    if "@" not in email:
        logger.debug("No @ in email candidate %r", email)
        return None
    return email


def extract_email_domain(text: Optional[str]) -> Optional[str]:
    """Find a well-known provider domain ("gmail dot com") in a correction."""
    if not text:
        return None
    match = _DOMAIN_CORRECTION.search(text.lower())
    if not match:
        return None
    return f"{match.group(1)}.{match.group(2)}"


def extract_spelled_letters(text: Optional[str]) -> Optional[str]:
    """Return letters spelled one at a time ("s m i t h") joined, else None."""
    if not text:
        return None
    tokens = re.sub(r"[.,]", " ", text.lower()).split()
    if not tokens or not all(re.fullmatch(r"[a-z0-9]", t) for t in tokens):
        return None
    return "".join(tokens)


# --------------------------------------------------------------------------- #
# Phone
# --------------------------------------------------------------------------- #

_SPOKEN_DIGITS: dict[str, str] = {
    "zero": "0", "oh": "0", "one": "1", "two": "2", "three": "3", "four": "4",
    "five": "5", "six": "6", "seven": "7", "eight": "8", "nine": "9", "niner": "9",
}
_SPOKEN_DIGIT_PATTERN = re.compile(r"\b(" + "|".join(_SPOKEN_DIGITS) + r")\b")


def _collapse_repeat(digits: str) -> str:
    """Drop an exact restatement: "55512345675551234567" -> "5551234567"."""
    half = len(digits) // 2
    if len(digits) % 2 == 0 and half >= MIN_USABLE_PHONE_DIGITS and digits[:half] == digits[half:]:
        return digits[:half]
    return digits


def extract_phone(text: Optional[str]) -> Optional[str]:
    """Reduce a spoken phone number to its digits.

    Examples:
        >>> extract_phone("five five five 123 4567")
        '5551234567'
        >>> extract_phone("1 (555) 123-4567")
        '15551234567'
        >>> extract_phone("twelve") is None
        True
    """
    if not text:
        return None

    spoken = _SPOKEN_DIGIT_PATTERN.sub(lambda m: _SPOKEN_DIGITS[m.group(1)], text.lower())
    digits = _collapse_repeat(re.sub(r"\D", "", spoken))

    if len(digits) > FULL_PHONE_DIGITS + 1:
        digits = digits[-FULL_PHONE_DIGITS:]
    elif len(digits) == FULL_PHONE_DIGITS + 1 and not digits.startswith(LONG_DISTANCE_PREFIX):
        digits = digits[-FULL_PHONE_DIGITS:]

    if len(digits) < MIN_USABLE_PHONE_DIGITS:
        logger.debug("Phone candidate too short: %d digits", len(digits))
        return None
    return digits


def is_complete_phone(digits: Optional[str]) -> bool:
    """True for a full 10-digit number, or 11 digits with the leading 1."""
    if not digits or not digits.isdigit():
        return False
    if len(digits) == FULL_PHONE_DIGITS:
        return True
    return len(digits) == FULL_PHONE_DIGITS + 1 and digits.startswith(LONG_DISTANCE_PREFIX)


# --------------------------------------------------------------------------- #
# Free text
# --------------------------------------------------------------------------- #

def extract_free_text(text: Optional[str], min_length: int = 2) -> Optional[str]:
    """Accept a call reason or message body verbatim, minus noise."""
    if not text:
        return None
    cleaned = " ".join(text.split())
    if len(cleaned) < min_length or not re.search(r"[A-Za-z0-9]", cleaned):
        return None
    return cleaned
