"""Tests for the conversation state machine."""

import pytest

from receptionist.conversation.state_machine import (
    BOOKING_STATES,
    INFO_STATES,
    TERMINAL_STATES,
    ConversationState,
    ConversationStateMachine,
    InvalidTransitionError,
    TransitionTrigger,
    successors,
)

S = ConversationState
T = TransitionTrigger


def drive(machine: ConversationStateMachine, *triggers: TransitionTrigger) -> ConversationState:
    for trigger in triggers:
        machine.transition(trigger)
    return machine.current_state


class TestInitialState:
    def test_starts_in_greeting(self, state_machine):
        assert state_machine.current_state == S.GREETING

    def test_initial_history_has_one_entry(self, state_machine):
        assert len(state_machine.get_history()) == 1

    def test_not_terminal_at_start(self, state_machine):
        assert not state_machine.is_terminal()

    def test_only_greeting_delivered_is_valid(self, state_machine):
        assert state_machine.get_valid_triggers() == [T.GREETING_DELIVERED]


class TestIntentRouting:
    @pytest.mark.parametrize(
        "trigger, expected",
        [
            (T.INTENT_APPOINTMENT, S.CALENDAR_CHECK),
            (T.INTENT_MESSAGE, S.MESSAGE_FIRST_NAME),
            (T.INTENT_INQUIRY, S.INQUIRY),
            (T.INTENT_OFFICE_HOURS, S.OFFICE_HOURS_QUESTION),
            (T.INTENT_CALLBACK, S.CALLBACK_END),
            (T.INTENT_UNCLEAR, S.INTENT_CLARIFICATION),
        ],
    )
    def test_routes_from_awaiting_intent(self, state_machine, trigger, expected):
        assert drive(state_machine, T.GREETING_DELIVERED, trigger) == expected

    def test_clarification_defaults_to_appointment(self, state_machine):
        state = drive(state_machine, T.GREETING_DELIVERED, T.INTENT_UNCLEAR, T.DEFAULT_TO_APPOINTMENT)
        assert state == S.CALENDAR_CHECK

    def test_clarification_cannot_be_unclear_twice(self, state_machine):
        drive(state_machine, T.GREETING_DELIVERED, T.INTENT_UNCLEAR)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(T.INTENT_UNCLEAR)

    def test_invalid_trigger_from_greeting(self, state_machine):
        with pytest.raises(InvalidTransitionError, match="greeting"):
            state_machine.transition(T.INTENT_APPOINTMENT)


class TestInfoBranch:
    @pytest.mark.parametrize("state", sorted(INFO_STATES))
    def test_no_edge_into_booking_states(self, state):
        assert not successors(state) & BOOKING_STATES

    def test_info_can_reclassify(self, state_machine):
        state = drive(state_machine, T.GREETING_DELIVERED, T.INTENT_INQUIRY, T.RECLASSIFY)
        assert state == S.AWAITING_INTENT
        assert drive(state_machine, T.INTENT_APPOINTMENT) == S.CALENDAR_CHECK

    def test_office_hours_to_message(self, state_machine):
        state = drive(state_machine, T.GREETING_DELIVERED, T.INTENT_OFFICE_HOURS, T.MESSAGE_ACCEPTED)
        assert state == S.MESSAGE_FIRST_NAME

    def test_info_cannot_jump_to_calendar(self, state_machine):
        drive(state_machine, T.GREETING_DELIVERED, T.INTENT_INQUIRY)
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(T.INTENT_APPOINTMENT)


class TestSlotSearch:
    def test_offer_and_accept(self, state_machine):
        state = drive(
            state_machine, T.GREETING_DELIVERED, T.INTENT_APPOINTMENT, T.SLOTS_FOUND, T.SLOT_ACCEPTED,
        )
        assert state == S.APPOINTMENT_FIRST_NAME

    def test_reject_then_preference_loops_to_calendar(self, state_machine):
        state = drive(
            state_machine, T.GREETING_DELIVERED, T.INTENT_APPOINTMENT, T.SLOTS_FOUND,
            T.SLOT_REJECTED, T.TIME_PREFERENCE_GIVEN,
        )
        assert state == S.CALENDAR_CHECK

    def test_no_slots_goes_to_fallback(self, state_machine):
        state = drive(state_machine, T.GREETING_DELIVERED, T.INTENT_APPOINTMENT, T.NO_SLOTS)
        assert state == S.MESSAGE_FALLBACK_INTRO

    def test_rejections_exhausted(self, state_machine):
        state = drive(
            state_machine, T.GREETING_DELIVERED, T.INTENT_APPOINTMENT, T.SLOTS_FOUND,
            T.REJECTIONS_EXHAUSTED,
        )
        assert state == S.MESSAGE_FALLBACK_INTRO


class TestAppointmentDetails:
    def _to_first_name(self, machine):
        drive(machine, T.GREETING_DELIVERED, T.INTENT_APPOINTMENT, T.SLOTS_FOUND, T.SLOT_ACCEPTED)

    def test_full_path_for_new_client(self, state_machine):
        self._to_first_name(state_machine)
        state = drive(
            state_machine,
            T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED,
            T.EMAIL_CONFIRMED, T.NEW_CLIENT, T.FIELD_CAPTURED, T.FIELD_CAPTURED,
            T.DETAILS_CONFIRMED,
        )
        assert state == S.APPOINTMENT_COMPLETE
        assert state_machine.is_terminal()

    def test_returning_client_skips_referral(self, state_machine):
        self._to_first_name(state_machine)
        drive(
            state_machine,
            T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED,
            T.EMAIL_CONFIRMED,
        )
        assert drive(state_machine, T.RETURNING_CLIENT) == S.APPOINTMENT_CALL_REASON

    def test_email_rejected_returns_to_email(self, state_machine):
        self._to_first_name(state_machine)
        drive(state_machine, T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED)
        assert drive(state_machine, T.EMAIL_REJECTED) == S.APPOINTMENT_EMAIL

    def test_details_rejected_restarts_at_first_name(self, state_machine):
        self._to_first_name(state_machine)
        drive(
            state_machine,
            T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED,
            T.EMAIL_CONFIRMED, T.RETURNING_CLIENT, T.FIELD_CAPTURED,
        )
        assert drive(state_machine, T.DETAILS_REJECTED) == S.APPOINTMENT_FIRST_NAME


class TestMessageBranch:
    def test_full_message_path(self, state_machine):
        state = drive(
            state_machine, T.GREETING_DELIVERED, T.INTENT_MESSAGE,
            T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED, T.FIELD_CAPTURED,
            T.EMAIL_CONFIRMED, T.FIELD_CAPTURED, T.DETAILS_CONFIRMED,
        )
        assert state == S.MESSAGE_COMPLETE

    def test_message_fields_can_reclassify(self, state_machine):
        drive(state_machine, T.GREETING_DELIVERED, T.INTENT_MESSAGE, T.FIELD_CAPTURED)
        assert drive(state_machine, T.RECLASSIFY) == S.AWAITING_INTENT


class TestTerminalStates:
    @pytest.mark.parametrize("state", sorted(TERMINAL_STATES))
    def test_terminal_states_have_no_edges(self, state):
        assert successors(state) == set()

    def test_no_transition_after_terminal(self, state_machine):
        drive(state_machine, T.GREETING_DELIVERED, T.INTENT_CALLBACK)
        assert state_machine.is_terminal()
        with pytest.raises(InvalidTransitionError):
            state_machine.transition(T.NO_RESPONSE)

    @pytest.mark.parametrize(
        "state", sorted(set(ConversationState) - TERMINAL_STATES - {ConversationState.GREETING}),
    )
    def test_silence_can_end_any_live_state(self, state):
        assert ConversationState.DECLINED in successors(state)


class TestHistory:
    def test_trace_records_every_state(self, state_machine):
        drive(state_machine, T.GREETING_DELIVERED, T.INTENT_UNCLEAR, T.DEFAULT_TO_APPOINTMENT)
        assert state_machine.get_state_trace() == [
            "greeting", "awaiting_intent", "intent_clarification", "calendar_check",
        ]

    def test_history_records_trigger(self, state_machine):
        state_machine.transition(T.GREETING_DELIVERED)
        assert state_machine.get_history()[-1].trigger == T.GREETING_DELIVERED
