"""
Outcome dispatcher: performs the side effects of a completed call.

An appointment call creates the booking and emits one ``AppointmentEvent``;
a message call emits one ``MessageEvent``. The one-shot flag on the record
is set before any external call, so a retry, a duplicate turn, or an
exception halfway through can never produce a second booking or event.
Failures are logged and swallowed; the caller has already been told the
outcome.
"""

import asyncio
import logging
from typing import Optional

from receptionist.config import settings
from receptionist.conversation.record import CallRecord
from receptionist.conversation.state_machine import ConversationState
from receptionist.integrations.calendar import CalendarService
from receptionist.integrations.notifications import NotificationSink
from receptionist.logging_context import mask_value
from receptionist.prompts.prompt_templates import build_message_summary
from receptionist.schemas.booking_schema import (
    AppointmentEvent,
    BookingResult,
    MessageEvent,
    NotificationEvent,
)

logger = logging.getLogger(__name__)


def _intent_value(record: CallRecord) -> Optional[str]:
    return record.intent.value if record.intent else None


def build_appointment_event(record: CallRecord, booking: BookingResult) -> AppointmentEvent:
    slot = record.selected_slot
    return AppointmentEvent(
        call_id=record.call_id,
        first_name=record.first_name or "",
        last_name=record.last_name or "",
        phone=record.phone or "",
        email_address=record.email or record.email_candidate or "",
        selected_slot=slot.display_text if slot else "",
        selected_slot_iso=slot.iso if slot else "",
        call_reason=record.call_reason or settings.business.default_call_reason,
        previous_client=record.prior_client or "No",
        referral_source=record.referral_source or "Not applicable",
        booking_status="confirmed" if booking.success else "failed",
        booking_id=booking.booking_id,
        booking_error=booking.error,
        slot_offer_attempts=record.slot_rejection_count + 1,
        intent=_intent_value(record),
    )


def build_message_event(record: CallRecord) -> MessageEvent:
    email = record.email or record.email_candidate
    return MessageEvent(
        call_id=record.call_id,
        first_name=record.first_name or "",
        last_name=record.last_name or "",
        phone=record.phone or "",
        email_address=email or "",
        call_reason=record.message_content or "",
        transcript_summary=build_message_summary(
            record.message_content, record.first_name, record.last_name, record.phone, email,
        ),
        intent=_intent_value(record),
    )


class OutcomeDispatcher:
    """Runs booking creation and notification exactly once per call."""

    def __init__(
        self,
        calendar: CalendarService,
        sink: NotificationSink,
        calendar_timeout: float = 10.0,
        notify_timeout: float = 5.0,
    ) -> None:
        self.calendar = calendar
        self.sink = sink
        self.calendar_timeout = calendar_timeout
        self.notify_timeout = notify_timeout

    async def dispatch(self, record: CallRecord) -> None:
        """Emit the side effects for a record in a completed state.

        Records in any other state, and records already dispatched, are
        left alone.
        """
        if record.state == ConversationState.APPOINTMENT_COMPLETE:
            if record.booking_dispatched:
                logger.info("Booking already dispatched, skipping")
                return
            record.booking_dispatched = True
            booking = await self._create_booking(record)
            await self._emit(build_appointment_event(record, booking))

        elif record.state == ConversationState.MESSAGE_COMPLETE:
            if record.message_dispatched:
                logger.info("Message already dispatched, skipping")
                return
            record.message_dispatched = True
            await self._emit(build_message_event(record))

    async def _create_booking(self, record: CallRecord) -> BookingResult:
        if record.selected_slot is None:
            logger.error("Appointment completed without a selected slot")
            return BookingResult(success=False, status="failed", error="No slot selected")

        contact = record.contact()
        logger.debug(
            "Creating booking at %s for %s / %s",
            record.selected_slot.iso, mask_value(contact.phone), mask_value(contact.email),
        )
        try:
            result = await asyncio.wait_for(
                self.calendar.create_booking(record.selected_slot, contact),
                self.calendar_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Booking timed out after %.1fs", self.calendar_timeout)
            return BookingResult(success=False, status="failed", error="Booking request timed out")
        except Exception as exc:
            logger.exception("Booking failed")
            return BookingResult(success=False, status="failed", error=str(exc))

        if result.success:
            logger.info("Booking confirmed: %s", result.booking_id)
        else:
            logger.warning("Booking rejected: %s", result.error)
        return result

    async def _emit(self, event: NotificationEvent) -> None:
        try:
            await asyncio.wait_for(self.sink.emit(event), self.notify_timeout)
        except asyncio.TimeoutError:
            logger.warning("Notification timed out after %.1fs", self.notify_timeout)
        except Exception:
            logger.exception("Notification failed for %s event", event.type)
        else:
            logger.info("Notification sent: %s", event.type)
