"""
Conversation controller: one caller utterance in, one spoken reply out.

``handle_turn`` looks up (or creates) the call's record, runs the handler
for the current state, records the transcript, and, when the call reaches
a terminal state, dispatches the outcome and discards the session.

Every state change goes through ``ConversationStateMachine.transition``.
Handlers decide which trigger applies; the transition table decides
whether the move is allowed.

Usage:
    controller = ConversationController(store, classifier, calendar, dispatcher)
    reply = await controller.handle_turn("CA123", "")
    print(reply.text)  # greeting
"""

import asyncio
import re
from datetime import datetime
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from receptionist.config import AppConfig, settings
from receptionist.conversation.dispatcher import OutcomeDispatcher
from receptionist.conversation.extractors import (
    extract_email,
    extract_email_domain,
    extract_spelled_letters,
)
from receptionist.conversation.field_policy import (
    APPOINTMENT_FIELDS,
    FIELD_DEFINITIONS,
    MESSAGE_FIELDS,
    attempt_field,
)
from receptionist.conversation.intent import IntentClassifier
from receptionist.conversation.record import CallRecord
from receptionist.conversation.replies import (
    Confirmation,
    FollowUp,
    PriorClient,
    classify_confirmation,
    classify_follow_up,
    classify_prior_client,
    mentions_booking,
)
from receptionist.conversation.session_store import CallSessionStore
from receptionist.conversation.slot_negotiator import DecisionKind, resolve_response, select_offers
from receptionist.conversation.state_machine import (
    APPOINTMENT_STATES,
    ConversationState,
    TransitionTrigger,
)
from receptionist.conversation.time_preference import parse_time_preference
from receptionist.integrations.calendar import CalendarService
from receptionist.logging_context import bind_call_id, get_call_logger, mask_value
from receptionist.prompts import spoken_lines as lines
from receptionist.prompts.prompt_templates import (
    build_confirmation_summary,
    build_email_read_back,
)
from receptionist.schemas.call_schema import CallOutcome, Intent, Speaker, TurnReply

logger = get_call_logger(__name__)

S = ConversationState
T = TransitionTrigger

# Intent -> (trigger, line spoken on arrival). Appointment is handled
# separately because it enters the calendar check.
_INTENT_ROUTES: dict[Intent, tuple[TransitionTrigger, str]] = {
    Intent.MESSAGE: (T.INTENT_MESSAGE, lines.MESSAGE_FIRST_NAME),
    Intent.INQUIRY: (T.INTENT_INQUIRY, lines.INQUIRY),
    Intent.OFFICE_HOURS_QUESTION: (T.INTENT_OFFICE_HOURS, lines.OFFICE_HOURS),
    Intent.CALLBACK: (T.INTENT_CALLBACK, lines.CALLBACK_END),
}

_TERMINAL_OUTCOMES: dict[ConversationState, CallOutcome] = {
    S.APPOINTMENT_COMPLETE: CallOutcome.APPOINTMENT_BOOKED,
    S.MESSAGE_COMPLETE: CallOutcome.MESSAGE_TAKEN,
    S.CALLBACK_END: CallOutcome.CALLBACK_LATER,
    S.DECLINED: CallOutcome.DECLINED,
}

# Message states where asking to book sends the caller back to intent routing.
_MESSAGE_ESCAPE_STATES = frozenset(
    {S.MESSAGE_FIRST_NAME, S.MESSAGE_LAST_NAME, S.MESSAGE_PHONE, S.MESSAGE_EMAIL}
)

_LEADING_NEGATIVE = re.compile(r"^\s*(no|nope|nah)\b[\s,.!]*", re.IGNORECASE)

Handler = Callable[[CallRecord, str], Awaitable[str]]


class ConversationController:
    """Drives one turn of a call through the state machine."""

    def __init__(
        self,
        store: CallSessionStore,
        classifier: IntentClassifier,
        calendar: CalendarService,
        dispatcher: OutcomeDispatcher,
        config: AppConfig = settings,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.calendar = calendar
        self.dispatcher = dispatcher
        self.config = config
        self._clock = clock or (lambda: datetime.now(ZoneInfo(config.calendar.timezone)))

        self._handlers: dict[ConversationState, Handler] = {
            S.AWAITING_INTENT: self._route_intent,
            S.INTENT_CLARIFICATION: self._route_intent,
            S.INQUIRY: self._handle_info_reply,
            S.OFFICE_HOURS_QUESTION: self._handle_info_reply,
            S.OFFER_SLOTS: self._handle_slot_reply,
            S.ASK_PREFERRED_TIME: self._handle_preferred_time,
            S.MESSAGE_FALLBACK_INTRO: self._handle_message_fallback,
            S.APPOINTMENT_EMAIL_CONFIRM: self._handle_email_confirm,
            S.MESSAGE_EMAIL_CONFIRM: self._handle_email_confirm,
            S.APPOINTMENT_PRIOR_CLIENT: self._handle_prior_client,
            S.APPOINTMENT_CONFIRM: self._handle_final_confirm,
            S.MESSAGE_CONFIRM: self._handle_final_confirm,
        }
        for state in FIELD_DEFINITIONS:
            self._handlers[state] = self._handle_field

    async def handle_turn(self, call_id: str, utterance: Optional[str]) -> TurnReply:
        """Process one caller utterance (``""`` for silence) and return the reply."""
        text = " ".join((utterance or "").split())
        with bind_call_id(call_id):
            farewell = self.store.ended_reply(call_id)
            if farewell is not None:
                logger.info("Turn received after call ended, repeating farewell")
                return TurnReply(farewell, end_call=True)

            async with self.store.session(call_id) as record:
                if record is None:
                    # Ended while this turn waited for the lock.
                    return TurnReply(self.store.ended_reply(call_id) or lines.DECLINED, end_call=True)
                try:
                    return await self._process(record, text)
                except Exception:
                    logger.exception("Turn failed in state %s", record.state.value)
                    record.ended = True
                    record.outcome = CallOutcome.ERROR
                    self.store.discard(call_id, lines.TECHNICAL_ISSUE)
                    return TurnReply(lines.TECHNICAL_ISSUE, end_call=True, state=record.state.value)

    async def end_call(self, call_id: str) -> None:
        """Release a call the caller hung up on. Nothing is dispatched."""
        with bind_call_id(call_id):
            if self.store.get(call_id) is None:
                return
            async with self.store.session(call_id) as record:
                if record is None:
                    return
                record.ended = True
                record.outcome = CallOutcome.HUNG_UP
                logger.info("Caller hung up in state %s", record.state.value)
                self.store.discard(call_id, lines.DECLINED)

    async def _process(self, record: CallRecord, utterance: str) -> TurnReply:
        if utterance:
            record.add_turn(Speaker.CALLER, utterance)

        reply = await self._step(record, utterance)
        record.add_turn(Speaker.AGENT, reply)

        if record.fsm.is_terminal():
            await self._finish(record, reply)
            return TurnReply(reply, end_call=True, state=record.state.value)
        return TurnReply(reply, state=record.state.value)

    async def _step(self, record: CallRecord, utterance: str) -> str:
        state = record.state

        if state == S.GREETING:
            record.fsm.transition(T.GREETING_DELIVERED)
            if not utterance:
                return lines.GREETING
            return await self._route_intent(record, utterance)

        if state == S.CALENDAR_CHECK:
            if not record.calendar_announced:
                return self._announce_calendar_check(record)
            return await self._query_calendar(record)

        if not utterance:
            return self._handle_silence(record)
        record.silent_turns = 0

        handler = self._handlers.get(state)
        if handler is None:
            raise RuntimeError(f"No handler for state {state.value}")
        return await handler(record, utterance)

    async def _finish(self, record: CallRecord, farewell: str) -> None:
        record.ended = True
        if record.outcome is None:
            record.outcome = _TERMINAL_OUTCOMES[record.state]
        logger.info(
            "Call ended: %s (trace: %s)",
            record.outcome.value, " -> ".join(record.fsm.get_state_trace()),
        )
        await self.dispatcher.dispatch(record)
        self.store.discard(record.call_id, farewell)

    # ------------------------------------------------------------------ #
    # Prompts
    # ------------------------------------------------------------------ #

    def _current_prompt(self, record: CallRecord) -> str:
        """The question the caller is currently being asked."""
        state = record.state
        if state in FIELD_DEFINITIONS:
            return FIELD_DEFINITIONS[state].prompt
        if state in (S.APPOINTMENT_EMAIL_CONFIRM, S.MESSAGE_EMAIL_CONFIRM):
            return build_email_read_back(lines.EMAIL_READ_BACK, record.email_candidate)
        if state in (S.APPOINTMENT_CONFIRM, S.MESSAGE_CONFIRM):
            return self._summary(record)
        if state == S.OFFER_SLOTS and record.offered_slots:
            return lines.OFFER_SLOT.format(slot=record.offered_slots[0].display_text)
        return {
            S.AWAITING_INTENT: lines.HOW_CAN_I_HELP,
            S.INTENT_CLARIFICATION: lines.INTENT_CLARIFICATION,
            S.INQUIRY: lines.INQUIRY,
            S.OFFICE_HOURS_QUESTION: lines.OFFICE_HOURS,
            S.ASK_PREFERRED_TIME: lines.ASK_PREFERRED_TIME,
            S.MESSAGE_FALLBACK_INTRO: lines.FALLBACK_REPEAT,
            S.APPOINTMENT_PRIOR_CLIENT: lines.PRIOR_CLIENT,
        }.get(state, lines.HOW_CAN_I_HELP)

    def _summary(self, record: CallRecord) -> str:
        slot_text = None
        if record.state in APPOINTMENT_STATES and record.selected_slot:
            slot_text = record.selected_slot.display_text
        return build_confirmation_summary(
            record.first_name, record.last_name, record.phone,
            record.email or record.email_candidate, slot_text,
        )

    # ------------------------------------------------------------------ #
    # Silence
    # ------------------------------------------------------------------ #

    def _handle_silence(self, record: CallRecord) -> str:
        record.silent_turns += 1
        if record.silent_turns >= self.config.conversation.max_silent_turns:
            logger.info("No response after %d silent turns", record.silent_turns)
            record.fsm.transition(T.NO_RESPONSE)
            record.outcome = CallOutcome.NO_RESPONSE
            return lines.NO_RESPONSE
        if record.silent_turns == 1:
            return "" if record.state == S.AWAITING_INTENT else lines.DIDNT_CATCH
        return f"{lines.STILL_THERE} {self._current_prompt(record)}"

    # ------------------------------------------------------------------ #
    # Intent routing and the info branch
    # ------------------------------------------------------------------ #

    async def _route_intent(self, record: CallRecord, utterance: str) -> str:
        result = await self.classifier.classify(utterance)
        intent = result.intent
        logger.info(
            "Intent %s from %s (confidence %.2f)", intent.value, result.source, result.confidence,
        )

        if intent == Intent.UNCLEAR:
            if record.state == S.AWAITING_INTENT:
                record.fsm.transition(T.INTENT_UNCLEAR)
                return lines.INTENT_CLARIFICATION
            logger.info("Still unclear after clarification, defaulting to appointment")
            record.intent = Intent.APPOINTMENT
            record.fsm.transition(T.DEFAULT_TO_APPOINTMENT)
            return self._announce_calendar_check(record)

        record.intent = intent
        if intent == Intent.APPOINTMENT:
            record.fsm.transition(T.INTENT_APPOINTMENT)
            return self._announce_calendar_check(record)

        trigger, line = _INTENT_ROUTES[intent]
        record.fsm.transition(trigger)
        return line

    async def _handle_info_reply(self, record: CallRecord, utterance: str) -> str:
        if mentions_booking(utterance):
            logger.info("Booking requested from %s, reclassifying", record.state.value)
            record.fsm.transition(T.RECLASSIFY)
            return await self._route_intent(record, utterance)

        if classify_follow_up(utterance) == FollowUp.DECLINE:
            record.fsm.transition(T.CALLER_DECLINED)
            return lines.DECLINED

        record.fsm.transition(T.MESSAGE_ACCEPTED)
        return lines.MESSAGE_FIRST_NAME

    # ------------------------------------------------------------------ #
    # Slot search
    # ------------------------------------------------------------------ #

    def _announce_calendar_check(self, record: CallRecord) -> str:
        record.calendar_announced = True
        return lines.CALENDAR_CHECK

    async def _query_calendar(self, record: CallRecord) -> str:
        record.calendar_announced = False
        cal = self.config.calendar
        window = parse_time_preference(record.time_preference, self._clock(), cal.search_days)

        try:
            slots = await asyncio.wait_for(
                self.calendar.list_availability(window.start, window.end), cal.timeout_sec,
            )
        except asyncio.TimeoutError:
            logger.warning("Calendar query timed out after %.1fs", cal.timeout_sec)
            slots = []
        except Exception as exc:
            logger.warning("Calendar query failed: %s", exc)
            slots = []

        record.offered_slots = select_offers(
            slots, window, record.rejected_slot_isos, cal.max_offered_slots,
        )
        if not record.offered_slots:
            logger.info("No slots available, offering to take a message")
            record.fsm.transition(T.NO_SLOTS)
            return lines.NO_SLOTS

        logger.info("Offering earliest of %d slots", len(record.offered_slots))
        record.fsm.transition(T.SLOTS_FOUND)
        return lines.OFFER_SLOT.format(slot=record.offered_slots[0].display_text)

    async def _handle_slot_reply(self, record: CallRecord, utterance: str) -> str:
        decision = resolve_response(utterance, record.offered_slots)
        offered = record.offered_slots[0]

        if decision.kind == DecisionKind.ACCEPT:
            record.selected_slot = decision.slot
            record.fsm.transition(T.SLOT_ACCEPTED)
            logger.info("Slot accepted: %s", decision.slot.iso)
            return lines.APPOINTMENT_FIRST_NAME

        if decision.kind == DecisionKind.TIME_PREFERENCE:
            record.time_preference = decision.preference
            record.fsm.transition(T.TIME_PREFERENCE_GIVEN)
            return self._announce_calendar_check(record)

        if decision.kind == DecisionKind.REJECT:
            record.slot_rejection_count += 1
            record.rejected_slot_isos.append(offered.iso)
            max_rejections = self.config.conversation.max_slot_rejections
            logger.info("Slot rejected (%d/%d)", record.slot_rejection_count, max_rejections)
            if record.slot_rejection_count >= max_rejections:
                record.fsm.transition(T.REJECTIONS_EXHAUSTED)
                return lines.TOO_MANY_REJECTIONS
            record.fsm.transition(T.SLOT_REJECTED)
            return lines.ASK_PREFERRED_TIME

        return lines.REOFFER_SLOT.format(slot=offered.display_text)

    async def _handle_preferred_time(self, record: CallRecord, utterance: str) -> str:
        record.time_preference = utterance
        record.fsm.transition(T.TIME_PREFERENCE_GIVEN)
        return self._announce_calendar_check(record)

    async def _handle_message_fallback(self, record: CallRecord, utterance: str) -> str:
        if classify_follow_up(utterance) == FollowUp.DECLINE:
            record.fsm.transition(T.CALLER_DECLINED)
            return lines.DECLINED
        record.fsm.transition(T.MESSAGE_ACCEPTED)
        return lines.MESSAGE_FIRST_NAME

    # ------------------------------------------------------------------ #
    # Details
    # ------------------------------------------------------------------ #

    async def _handle_field(self, record: CallRecord, utterance: str) -> str:
        if record.state in _MESSAGE_ESCAPE_STATES and mentions_booking(utterance):
            logger.info("Booking requested while taking a message, reclassifying")
            record.fsm.transition(T.RECLASSIFY)
            return await self._route_intent(record, utterance)

        definition = FIELD_DEFINITIONS[record.state]
        attempt = attempt_field(definition, record.retry_counter(definition.field), utterance)
        if not attempt.captured:
            logger.info("Could not capture %s", definition.display_name)
            return definition.retry_prompt

        setattr(record, definition.field, attempt.value)
        logger.info("Captured %s%s", definition.display_name, " (raw)" if attempt.forced else "")
        logger.debug("%s = %s", definition.field, mask_value(attempt.value))
        record.fsm.transition(T.FIELD_CAPTURED)
        return self._current_prompt(record)

    def _read_back(self, record: CallRecord) -> str:
        return build_email_read_back(lines.EMAIL_READ_BACK, record.email_candidate)

    async def _handle_email_confirm(self, record: CallRecord, utterance: str) -> str:
        answer = classify_confirmation(utterance)

        if answer == Confirmation.NO:
            correction = _LEADING_NEGATIVE.sub("", utterance)
            corrected = extract_email(correction) if correction else None
            if corrected:
                record.email_candidate = corrected
                return self._read_back(record)
            domain = extract_email_domain(correction)
            if domain and record.email_candidate:
                record.email_candidate = self._merge_domain(record.email_candidate, domain)
                return self._read_back(record)
            logger.info("Email rejected, collecting it again")
            record.email_candidate = None
            record.retries.pop("email_candidate", None)
            record.fsm.transition(T.EMAIL_REJECTED)
            return lines.EMAIL_RESTART

        if answer == Confirmation.YES:
            record.email = record.email_candidate
            record.fsm.transition(T.EMAIL_CONFIRMED)
            logger.info("Email confirmed")
            return self._current_prompt(record)

        full = extract_email(utterance)
        domain = extract_email_domain(utterance)
        if domain and not full and record.email_candidate:
            record.email_candidate = self._merge_domain(record.email_candidate, domain)
            return self._read_back(record)
        if full:
            record.email_candidate = full
            return self._read_back(record)

        letters = extract_spelled_letters(utterance)
        if letters and record.email_candidate:
            username, at, domain_part = record.email_candidate.partition("@")
            record.email_candidate = f"{username}{letters}{at}{domain_part}"
            return self._read_back(record)

        return self._read_back(record)

    @staticmethod
    def _merge_domain(candidate: str, domain: str) -> str:
        username = candidate.partition("@")[0]
        return f"{username}@{domain}"

    async def _handle_prior_client(self, record: CallRecord, utterance: str) -> str:
        if classify_prior_client(utterance) == PriorClient.RETURNING:
            record.prior_client = "Yes"
            record.fsm.transition(T.RETURNING_CLIENT)
            return lines.CALL_REASON_RETURNING
        record.prior_client = "No"
        record.fsm.transition(T.NEW_CLIENT)
        return lines.REFERRAL

    async def _handle_final_confirm(self, record: CallRecord, utterance: str) -> str:
        answer = classify_confirmation(utterance)
        appointment = record.state == S.APPOINTMENT_CONFIRM

        if answer == Confirmation.NO:
            logger.info("Caller rejected the summary, starting details over")
            record.clear_fields(APPOINTMENT_FIELDS if appointment else MESSAGE_FIELDS)
            record.retries.clear()
            record.fsm.transition(T.DETAILS_REJECTED)
            return lines.APPOINTMENT_RESTART if appointment else lines.MESSAGE_RESTART

        if answer == Confirmation.YES:
            record.fsm.transition(T.DETAILS_CONFIRMED)
            if appointment:
                return lines.APPOINTMENT_COMPLETE.format(slot=record.selected_slot.display_text)
            return lines.MESSAGE_COMPLETE

        return lines.CONFIRM_AGAIN
