"""Shared test fixtures and fakes."""

import asyncio
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

import pytest

from receptionist.config import settings
from receptionist.conversation.controller import ConversationController
from receptionist.conversation.dispatcher import OutcomeDispatcher
from receptionist.conversation.intent import IntentClassifier, IntentOracle, OracleVerdict
from receptionist.conversation.session_store import CallSessionStore
from receptionist.conversation.state_machine import ConversationStateMachine
from receptionist.integrations.calendar import CalendarService, build_slot
from receptionist.integrations.notifications import NotificationSink
from receptionist.schemas.booking_schema import (
    BookingResult,
    ContactDetails,
    NotificationEvent,
    Slot,
)

TZ = "America/New_York"

# A Monday; the next office days are Tuesday 20th to Thursday 22nd.
FIXED_NOW = datetime(2026, 10, 19, 9, 0, tzinfo=ZoneInfo(TZ))


def make_slot(day: int, hour: int, minute: int = 0) -> Slot:
    """Slot on October ``day`` 2026 at ``hour:minute`` New York time."""
    return build_slot(datetime(2026, 10, day, hour, minute, tzinfo=ZoneInfo(TZ)), TZ)


def default_slots() -> list[Slot]:
    return [
        make_slot(20, 11), make_slot(20, 11, 15), make_slot(21, 14),
        make_slot(22, 15, 30), make_slot(27, 11), make_slot(28, 16),
    ]


class FakeCalendar(CalendarService):
    """Returns fixed slots and records every call."""

    def __init__(
        self,
        slots: Optional[list[Slot]] = None,
        fail_query: bool = False,
        fail_booking: bool = False,
        query_delay: float = 0.0,
    ) -> None:
        self.slots = default_slots() if slots is None else slots
        self.fail_query = fail_query
        self.fail_booking = fail_booking
        self.query_delay = query_delay
        self.queries: list[tuple[datetime, datetime]] = []
        self.bookings: list[tuple[Slot, ContactDetails]] = []

    async def list_availability(self, start: datetime, end: datetime) -> list[Slot]:
        self.queries.append((start, end))
        if self.query_delay:
            await asyncio.sleep(self.query_delay)
        if self.fail_query:
            raise ConnectionError("calendar unavailable")
        return [s for s in self.slots if start <= s.start < end]

    async def create_booking(self, slot: Slot, contact: ContactDetails) -> BookingResult:
        self.bookings.append((slot, contact))
        if self.fail_booking:
            raise ConnectionError("booking service down")
        return BookingResult(success=True, booking_id=f"BK-{len(self.bookings):03d}", status="accepted")


class RecordingSink(NotificationSink):
    """Keeps every emitted event; optionally fails."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[NotificationEvent] = []

    async def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)
        if self.fail:
            raise ConnectionError("webhook unreachable")


class StubOracle(IntentOracle):
    """Returns a canned verdict, or raises when given an exception."""

    def __init__(self, label: str = "unclear", confidence: float = 0.9, error: Optional[Exception] = None,
                 delay: float = 0.0) -> None:
        self.label = label
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def classify(self, text: str) -> OracleVerdict:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return OracleVerdict(self.label, self.confidence)


@pytest.fixture
def state_machine():
    return ConversationStateMachine()


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def store():
    return CallSessionStore()


@pytest.fixture
def make_controller(store) -> Callable[..., ConversationController]:
    """Factory for a controller wired to fakes. Keyword args override the defaults."""

    def _make(
        calendar: Optional[CalendarService] = None,
        sink: Optional[NotificationSink] = None,
        oracle: Optional[IntentOracle] = None,
        config=settings,
        now: datetime = FIXED_NOW,
    ) -> ConversationController:
        calendar = calendar or FakeCalendar()
        sink = sink or RecordingSink()
        dispatcher = OutcomeDispatcher(calendar, sink, calendar_timeout=1.0, notify_timeout=1.0)
        return ConversationController(
            store=store,
            classifier=IntentClassifier(oracle=oracle, timeout_sec=0.5),
            calendar=calendar,
            dispatcher=dispatcher,
            config=config,
            clock=lambda: now,
        )

    return _make


async def play(controller: ConversationController, call_id: str, utterances: list[str]):
    """Run the greeting turn and then each utterance; return every reply."""
    replies = [await controller.handle_turn(call_id, "")]
    for text in utterances:
        replies.append(await controller.handle_turn(call_id, text))
    return replies
