"""Call-level schemas shared by the controller, the dispatcher, and transports."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Intent(str, Enum):
    """Purpose of the call as classified from the caller's first request."""

    APPOINTMENT = "appointment"
    MESSAGE = "message"
    INQUIRY = "inquiry"
    OFFICE_HOURS_QUESTION = "office_hours_question"
    CALLBACK = "callback"
    UNCLEAR = "unclear"


class Speaker(str, Enum):
    AGENT = "agent"
    CALLER = "caller"


class CallOutcome(str, Enum):
    APPOINTMENT_BOOKED = "appointment_booked"
    MESSAGE_TAKEN = "message_taken"
    DECLINED = "declined"
    CALLBACK_LATER = "callback_later"
    NO_RESPONSE = "no_response"
    HUNG_UP = "hung_up"
    ERROR = "error"


class TranscriptTurn(BaseModel):
    """A single line of the call transcript."""

    speaker: Speaker
    text: str
    state: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class TurnReply:
    """What the transport should do after a turn."""

    text: str
    end_call: bool = False
    state: Optional[str] = None
