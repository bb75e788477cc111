"""
Calendar provider interface and an in-memory implementation.

The in-memory calendar generates consultation slots during office hours
(Tuesday to Thursday, 11:00 AM to 5:00 PM) and keeps bookings in a dict.
It backs the console demo and local development when Cal.com credentials
are not configured.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from receptionist.conversation.speech_format import format_slot_for_speech
from receptionist.schemas.booking_schema import BookingResult, ContactDetails, Slot

logger = logging.getLogger(__name__)

# Monday is 0.
OFFICE_WEEKDAYS = (1, 2, 3)
OFFICE_OPEN = time(11, 0)
OFFICE_CLOSE = time(17, 0)


def build_slot(start: datetime, timezone: str, duration_minutes: int = 15) -> Slot:
    """Build a ``Slot`` from an aware start time, localized for speech."""
    local = start.astimezone(ZoneInfo(timezone))
    return Slot(
        start=local,
        duration_minutes=duration_minutes,
        iso=local.isoformat(),
        display_text=format_slot_for_speech(local, timezone),
    )


class CalendarService(ABC):
    """Availability lookups and booking creation against a calendar provider."""

    @abstractmethod
    async def list_availability(self, start: datetime, end: datetime) -> list[Slot]:
        """Return open slots between ``start`` and ``end``, earliest first."""

    @abstractmethod
    async def create_booking(self, slot: Slot, contact: ContactDetails) -> BookingResult:
        """Book ``slot`` for the caller."""


class InMemoryCalendar(CalendarService):
    """Office-hours calendar held in memory."""

    def __init__(
        self,
        timezone: str = "America/New_York",
        slot_minutes: int = 15,
        blocked: Optional[set[str]] = None,
    ) -> None:
        self.timezone = timezone
        self.slot_minutes = slot_minutes
        self._blocked = set(blocked or ())
        self.bookings: dict[str, dict] = {}

    def _office_slots(self, start: datetime, end: datetime) -> list[Slot]:
        tz = ZoneInfo(self.timezone)
        local_start = start.astimezone(tz)
        local_end = end.astimezone(tz)
        step = timedelta(minutes=self.slot_minutes)
        slots = []

        day = local_start.date()
        while day <= local_end.date():
            if day.weekday() in OFFICE_WEEKDAYS:
                cursor = datetime.combine(day, OFFICE_OPEN, tzinfo=tz)
                close = datetime.combine(day, OFFICE_CLOSE, tzinfo=tz)
                while cursor < close:
                    if local_start <= cursor < local_end:
                        slots.append(build_slot(cursor, self.timezone, self.slot_minutes))
                    cursor += step
            day += timedelta(days=1)
        return slots

    async def list_availability(self, start: datetime, end: datetime) -> list[Slot]:
        slots = [
            slot for slot in self._office_slots(start, end)
            if slot.iso not in self._blocked
        ]
        logger.info("In-memory calendar: %d open slots", len(slots))
        return slots

    async def create_booking(self, slot: Slot, contact: ContactDetails) -> BookingResult:
        if slot.iso in self._blocked:
            return BookingResult(success=False, status="failed", error="Slot no longer available")

        ref = f"BK-{uuid.uuid4().hex[:6].upper()}"
        self._blocked.add(slot.iso)
        self.bookings[ref] = {
            "slot": slot.iso,
            "name": contact.full_name,
            "email": contact.email,
            "phone": contact.phone,
            "notes": contact.notes,
        }
        logger.info("Booking created: %s at %s", ref, slot.iso)
        return BookingResult(success=True, booking_id=ref, status="accepted")
