"""
Cal.com v1 REST adapter.

Availability: ``GET {base}/slots`` returns ``{"slots": {date: [...]}}``
where each entry is either an ISO string or ``{"time": iso}``. Dates are
flattened in order.

Booking: ``POST {base}/bookings?apiKey=...`` with the event type, start
time, and the caller's responses.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx

from receptionist.config import CalendarConfig
from receptionist.integrations.calendar import CalendarService, build_slot
from receptionist.schemas.booking_schema import BookingResult, ContactDetails, Slot

logger = logging.getLogger(__name__)


def _flatten_slots(payload: dict) -> list[str]:
    by_date = payload.get("slots") or {}
    times: list[str] = []
    for date in sorted(by_date):
        for entry in by_date[date] or []:
            value = entry if isinstance(entry, str) else entry.get("time")
            if value:
                times.append(value)
    return times


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class CalComCalendar(CalendarService):
    """Calendar backed by Cal.com.

    An ``httpx.AsyncClient`` can be injected for tests; otherwise a client
    is opened per request.
    """

    def __init__(self, config: CalendarConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        if not config.calcom_configured:
            raise ValueError("CALCOM_API_KEY and CALCOM_EVENT_TYPE_ID are required for Cal.com")
        self.config = config
        self._client = client

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.config.calcom_base_url.rstrip('/')}{path}"
        if self._client is not None:
            resp = await self._client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.config.timeout_sec) as client:
                resp = await client.request(method, url, **kwargs)
        resp.raise_for_status()
        return resp.json()

    async def list_availability(self, start: datetime, end: datetime) -> list[Slot]:
        params = {
            "apiKey": self.config.calcom_api_key,
            "eventTypeId": self.config.calcom_event_type_id,
            "startTime": start.isoformat(),
            "endTime": end.isoformat(),
            "timeZone": self.config.timezone,
        }
        data = await self._request("GET", "/slots", params=params)
        times = _flatten_slots(data)
        logger.info("Cal.com returned %d slots", len(times))
        return [
            build_slot(_parse_iso(value), self.config.timezone, self.config.slot_minutes)
            for value in times
        ]

    async def create_booking(self, slot: Slot, contact: ContactDetails) -> BookingResult:
        body = {
            "eventTypeId": int(self.config.calcom_event_type_id),
            "start": slot.iso,
            "lengthInMinutes": slot.duration_minutes,
            "responses": {
                "name": contact.full_name,
                "email": contact.email,
                "phone": contact.phone,
                "notes": contact.notes,
            },
            "timeZone": self.config.timezone,
            "language": "en",
        }
        try:
            data = await self._request(
                "POST", "/bookings", params={"apiKey": self.config.calcom_api_key}, json=body,
            )
        except httpx.HTTPStatusError as exc:
            logger.warning("Cal.com booking failed with status %d", exc.response.status_code)
            return BookingResult(
                success=False,
                status="failed",
                error=f"Cal.com returned status {exc.response.status_code}",
            )

        booking_id = data.get("uid") or data.get("id")
        logger.info("Cal.com booking created: %s", booking_id)
        return BookingResult(
            success=True,
            booking_id=str(booking_id) if booking_id is not None else None,
            status=str(data.get("status", "accepted")),
        )
