"""
System prompt and tool schema for the intent oracle.

The oracle is only asked to pick a label; every word the caller hears is
a fixed line from ``spoken_lines``.
"""

from receptionist.config import settings
from receptionist.conversation.intent import ORACLE_LABELS

_biz = settings.business

INTENT_SYSTEM_PROMPT = f"""
You classify the opening request of a phone caller to {_biz.name}, an
accounting and tax firm. Pick exactly one label:

- appointment: the caller wants to book, schedule, or set up a consultation or meeting.
- message: the caller wants to leave a message or voicemail for the firm.
- speak_to_person: the caller wants a person, has a question, or asks for information.
- unclear: none of the above, or you cannot tell.

Report how confident you are as a number between 0 and 1. Always call
the classify_intent function; never reply with text.
"""

CLASSIFY_INTENT_TOOL = {
    "type": "function",
    "function": {
        "name": "classify_intent",
        "description": "Record the caller's intent.",
        "parameters": {
            "type": "object",
            "properties": {
                "intent": {"type": "string", "enum": list(ORACLE_LABELS)},
                "confidence": {"type": "number", "minimum": 0, "maximum": 1},
            },
            "required": ["intent", "confidence"],
        },
    },
}
