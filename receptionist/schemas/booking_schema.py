"""Appointment slot, booking, and notification event models."""

from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Slot(BaseModel):
    """A bookable consultation start time.

    ``display_text`` is what the caller hears; it names only the start,
    never the end time or the length of the consultation.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime
    duration_minutes: int = 15
    iso: str
    display_text: str


class ContactDetails(BaseModel):
    """Caller details attached to a booking request."""

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    notes: str = ""

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class BookingResult(BaseModel):
    """Outcome of a create-booking call against the calendar provider."""

    success: bool
    booking_id: Optional[str] = None
    status: str = ""
    error: Optional[str] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AppointmentEvent(BaseModel):
    """Notification emitted once when an appointment call completes."""

    type: Literal["appointment_booking"] = "appointment_booking"
    call_id: str
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email_address: str = ""
    selected_slot: str = ""
    selected_slot_iso: str = ""
    call_reason: str
    previous_client: str = "No"
    referral_source: str = "Not applicable"
    booking_status: Literal["confirmed", "failed"] = "confirmed"
    booking_id: Optional[str] = None
    booking_error: Optional[str] = None
    slot_offer_attempts: int = 0
    intent: Optional[str] = None
    summary: str = "Appointment booking"
    timestamp: datetime = Field(default_factory=_utc_now)


class MessageEvent(BaseModel):
    """Notification emitted once when a message call completes."""

    type: Literal["message"] = "message"
    call_id: str
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email_address: str = ""
    call_reason: str = ""
    summary: str = "Callback request / Message left"
    transcript_summary: str = ""
    callback_requested: bool = True
    intent: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)


NotificationEvent = Union[AppointmentEvent, MessageEvent]
