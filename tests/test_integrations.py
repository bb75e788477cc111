"""Tests for the calendar, notification, and intent oracle adapters."""

import json
from datetime import datetime, timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import httpx
import pytest

from receptionist.config import CalendarConfig
from receptionist.integrations.calcom import CalComCalendar
from receptionist.integrations.calendar import InMemoryCalendar
from receptionist.integrations.notifications import InMemoryNotificationSink, WebhookNotificationSink
from receptionist.integrations.openai_oracle import OpenAIIntentOracle
from receptionist.schemas.booking_schema import ContactDetails, MessageEvent
from tests.conftest import FIXED_NOW, TZ, make_slot

CONTACT = ContactDetails(
    first_name="John", last_name="Smith", phone="5551234567",
    email="john@gmail.com", notes="tax help",
)


def calcom_config(**overrides) -> CalendarConfig:
    values = dict(
        calcom_api_key="test-key",
        calcom_event_type_id="42",
        calcom_base_url="https://cal.test/v1",
        timezone=TZ,
    )
    values.update(overrides)
    return CalendarConfig(**values)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestInMemoryCalendar:
    @pytest.mark.asyncio
    async def test_slots_only_in_office_hours(self):
        calendar = InMemoryCalendar(timezone=TZ, slot_minutes=15)

        slots = await calendar.list_availability(FIXED_NOW, FIXED_NOW + timedelta(days=2))

        assert len(slots) == 24
        assert slots[0] == make_slot(20, 11)
        assert slots[-1] == make_slot(20, 16, 45)

    @pytest.mark.asyncio
    async def test_no_slots_on_closed_days(self):
        calendar = InMemoryCalendar(timezone=TZ)
        friday = datetime(2026, 10, 23, tzinfo=ZoneInfo(TZ))
        assert await calendar.list_availability(friday, friday + timedelta(days=3)) == []

    @pytest.mark.asyncio
    async def test_booked_slot_disappears(self):
        calendar = InMemoryCalendar(timezone=TZ)
        slot = make_slot(20, 11)

        result = await calendar.create_booking(slot, CONTACT)
        slots = await calendar.list_availability(FIXED_NOW, FIXED_NOW + timedelta(days=2))

        assert result.success
        assert result.booking_id.startswith("BK-")
        assert slot not in slots
        assert calendar.bookings[result.booking_id]["name"] == "John Smith"

    @pytest.mark.asyncio
    async def test_double_booking_fails(self):
        calendar = InMemoryCalendar(timezone=TZ)
        slot = make_slot(20, 11)
        await calendar.create_booking(slot, CONTACT)

        result = await calendar.create_booking(slot, CONTACT)

        assert not result.success
        assert result.status == "failed"


class TestCalComCalendar:
    def test_requires_credentials(self):
        with pytest.raises(ValueError, match="CALCOM_API_KEY"):
            CalComCalendar(calcom_config(calcom_api_key=""))

    @pytest.mark.asyncio
    async def test_list_availability(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"slots": {
                "2026-10-21": [{"time": "2026-10-21T18:00:00Z"}],
                "2026-10-20": ["2026-10-20T15:00:00Z"],
            }})

        calendar = CalComCalendar(calcom_config(), client=mock_client(handler))
        slots = await calendar.list_availability(FIXED_NOW, FIXED_NOW + timedelta(days=14))

        assert [s.display_text for s in slots] == [
            "Tuesday, October 20 at 11:00 AM",
            "Wednesday, October 21 at 2:00 PM",
        ]
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/v1/slots"
        assert request.url.params["apiKey"] == "test-key"
        assert request.url.params["eventTypeId"] == "42"
        assert request.url.params["timeZone"] == TZ

    @pytest.mark.asyncio
    async def test_empty_availability(self):
        calendar = CalComCalendar(
            calcom_config(), client=mock_client(lambda r: httpx.Response(200, json={"slots": {}})),
        )
        assert await calendar.list_availability(FIXED_NOW, FIXED_NOW + timedelta(days=1)) == []

    @pytest.mark.asyncio
    async def test_availability_error_raises(self):
        calendar = CalComCalendar(
            calcom_config(), client=mock_client(lambda r: httpx.Response(503)),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await calendar.list_availability(FIXED_NOW, FIXED_NOW + timedelta(days=1))

    @pytest.mark.asyncio
    async def test_create_booking(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"uid": "abc123", "status": "ACCEPTED"})

        calendar = CalComCalendar(calcom_config(), client=mock_client(handler))
        result = await calendar.create_booking(make_slot(20, 11), CONTACT)

        assert result.success
        assert result.booking_id == "abc123"
        assert result.status == "ACCEPTED"
        body = json.loads(seen[0].content)
        assert body["eventTypeId"] == 42
        assert body["start"] == make_slot(20, 11).iso
        assert body["responses"] == {
            "name": "John Smith", "email": "john@gmail.com", "phone": "5551234567", "notes": "tax help",
        }
        assert seen[0].url.params["apiKey"] == "test-key"

    @pytest.mark.asyncio
    async def test_create_booking_rejected(self):
        calendar = CalComCalendar(
            calcom_config(), client=mock_client(lambda r: httpx.Response(409, json={"message": "taken"})),
        )
        result = await calendar.create_booking(make_slot(20, 11), CONTACT)
        assert not result.success
        assert result.status == "failed"
        assert "409" in result.error


class TestWebhookSink:
    def test_requires_url(self):
        with pytest.raises(ValueError):
            WebhookNotificationSink("")

    @pytest.mark.asyncio
    async def test_posts_event_json(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        sink = WebhookNotificationSink("https://hooks.test/receptionist", client=mock_client(handler))
        await sink.emit(MessageEvent(call_id="call-1", first_name="Jane", call_reason="tax return"))

        payload = json.loads(seen[0].content)
        assert seen[0].method == "POST"
        assert payload["type"] == "message"
        assert payload["call_id"] == "call-1"
        assert payload["callback_requested"] is True

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        sink = WebhookNotificationSink(
            "https://hooks.test/receptionist", client=mock_client(lambda r: httpx.Response(500)),
        )
        with pytest.raises(httpx.HTTPStatusError):
            await sink.emit(MessageEvent(call_id="call-1"))

    @pytest.mark.asyncio
    async def test_in_memory_sink_keeps_events(self):
        sink = InMemoryNotificationSink()
        await sink.emit(MessageEvent(call_id="call-1"))
        assert len(sink.events) == 1


class FakeCompletions:
    def __init__(self, arguments=None):
        self.arguments = arguments
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        tool_calls = None
        if self.arguments is not None:
            tool_calls = [SimpleNamespace(function=SimpleNamespace(arguments=self.arguments))]
        message = SimpleNamespace(tool_calls=tool_calls, content=None)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(arguments=None):
    completions = FakeCompletions(arguments)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class TestOpenAIIntentOracle:
    @pytest.mark.asyncio
    async def test_forced_function_call(self):
        client, completions = fake_openai(json.dumps({"intent": "appointment", "confidence": 0.92}))

        verdict = await OpenAIIntentOracle(client, model="gpt-4o-mini").classify("book me in")

        assert verdict.label == "appointment"
        assert verdict.confidence == pytest.approx(0.92)
        assert completions.kwargs["tool_choice"] == {
            "type": "function", "function": {"name": "classify_intent"},
        }
        assert completions.kwargs["messages"][-1] == {"role": "user", "content": "book me in"}
        assert completions.kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_missing_tool_call_raises(self):
        client, _ = fake_openai(None)
        with pytest.raises(ValueError, match="no tool call"):
            await OpenAIIntentOracle(client).classify("hello")

    @pytest.mark.asyncio
    async def test_unknown_label_raises(self):
        client, _ = fake_openai(json.dumps({"intent": "billing", "confidence": 0.9}))
        with pytest.raises(ValueError, match="unknown label"):
            await OpenAIIntentOracle(client).classify("hello")

    @pytest.mark.asyncio
    async def test_confidence_out_of_range_raises(self):
        client, _ = fake_openai(json.dumps({"intent": "message", "confidence": 7}))
        with pytest.raises(ValueError, match="out of range"):
            await OpenAIIntentOracle(client).classify("hello")

    @pytest.mark.asyncio
    async def test_missing_confidence_raises(self):
        client, _ = fake_openai(json.dumps({"intent": "message"}))
        with pytest.raises(ValueError, match="bad confidence"):
            await OpenAIIntentOracle(client).classify("hello")
