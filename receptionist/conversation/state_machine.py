"""
Finite state machine for the receptionist call flow.

Every move between steps of a call is an explicit (from, trigger, to)
entry in ``TRANSITIONS``. Anything not in the table raises
``InvalidTransitionError``. In particular, the info branch (``inquiry``,
``office_hours_question``) has no edge into the booking states; a caller
who asks to book from there goes back through ``awaiting_intent``.

Usage:
    sm = ConversationStateMachine()
    sm.transition(TransitionTrigger.GREETING_DELIVERED)
    assert sm.current_state == ConversationState.AWAITING_INTENT
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """All steps of a call."""

    # Pre-routing
    GREETING = "greeting"
    AWAITING_INTENT = "awaiting_intent"
    INTENT_CLARIFICATION = "intent_clarification"

    # Info branch
    INQUIRY = "inquiry"
    OFFICE_HOURS_QUESTION = "office_hours_question"

    # Slot search
    CALENDAR_CHECK = "calendar_check"
    OFFER_SLOTS = "offer_slots"
    ASK_PREFERRED_TIME = "ask_preferred_time"
    MESSAGE_FALLBACK_INTRO = "message_fallback_intro"

    # Appointment branch
    APPOINTMENT_FIRST_NAME = "appointment_first_name"
    APPOINTMENT_LAST_NAME = "appointment_last_name"
    APPOINTMENT_PHONE = "appointment_phone"
    APPOINTMENT_EMAIL = "appointment_email"
    APPOINTMENT_EMAIL_CONFIRM = "appointment_email_confirm"
    APPOINTMENT_PRIOR_CLIENT = "appointment_prior_client"
    APPOINTMENT_REFERRAL = "appointment_referral"
    APPOINTMENT_CALL_REASON = "appointment_call_reason"
    APPOINTMENT_CONFIRM = "appointment_confirm"

    # Message branch
    MESSAGE_FIRST_NAME = "message_first_name"
    MESSAGE_LAST_NAME = "message_last_name"
    MESSAGE_PHONE = "message_phone"
    MESSAGE_EMAIL = "message_email"
    MESSAGE_EMAIL_CONFIRM = "message_email_confirm"
    MESSAGE_CONTENT = "message_content"
    MESSAGE_CONFIRM = "message_confirm"

    # Terminal
    APPOINTMENT_COMPLETE = "appointment_complete"
    MESSAGE_COMPLETE = "message_complete"
    DECLINED = "declined"
    CALLBACK_END = "callback_end"


S = ConversationState

PRE_ROUTING_STATES = frozenset({S.GREETING, S.AWAITING_INTENT, S.INTENT_CLARIFICATION})
INFO_STATES = frozenset({S.INQUIRY, S.OFFICE_HOURS_QUESTION})
SLOT_SEARCH_STATES = frozenset(
    {S.CALENDAR_CHECK, S.OFFER_SLOTS, S.ASK_PREFERRED_TIME, S.MESSAGE_FALLBACK_INTRO}
)
APPOINTMENT_STATES = frozenset({
    S.APPOINTMENT_FIRST_NAME, S.APPOINTMENT_LAST_NAME, S.APPOINTMENT_PHONE,
    S.APPOINTMENT_EMAIL, S.APPOINTMENT_EMAIL_CONFIRM, S.APPOINTMENT_PRIOR_CLIENT,
    S.APPOINTMENT_REFERRAL, S.APPOINTMENT_CALL_REASON, S.APPOINTMENT_CONFIRM,
})
MESSAGE_STATES = frozenset({
    S.MESSAGE_FIRST_NAME, S.MESSAGE_LAST_NAME, S.MESSAGE_PHONE, S.MESSAGE_EMAIL,
    S.MESSAGE_EMAIL_CONFIRM, S.MESSAGE_CONTENT, S.MESSAGE_CONFIRM,
})
TERMINAL_STATES = frozenset({
    S.APPOINTMENT_COMPLETE, S.MESSAGE_COMPLETE, S.DECLINED, S.CALLBACK_END,
})
# States only reachable after intent classification chose booking.
BOOKING_STATES = SLOT_SEARCH_STATES | APPOINTMENT_STATES | {S.APPOINTMENT_COMPLETE}


class TransitionTrigger(str, Enum):
    """Events that cause state transitions."""

    GREETING_DELIVERED = "greeting_delivered"
    INTENT_APPOINTMENT = "intent_appointment"
    INTENT_MESSAGE = "intent_message"
    INTENT_INQUIRY = "intent_inquiry"
    INTENT_OFFICE_HOURS = "intent_office_hours"
    INTENT_CALLBACK = "intent_callback"
    INTENT_UNCLEAR = "intent_unclear"
    DEFAULT_TO_APPOINTMENT = "default_to_appointment"
    RECLASSIFY = "reclassify"
    SLOTS_FOUND = "slots_found"
    NO_SLOTS = "no_slots"
    SLOT_ACCEPTED = "slot_accepted"
    SLOT_REJECTED = "slot_rejected"
    REJECTIONS_EXHAUSTED = "rejections_exhausted"
    TIME_PREFERENCE_GIVEN = "time_preference_given"
    MESSAGE_ACCEPTED = "message_accepted"
    CALLER_DECLINED = "caller_declined"
    FIELD_CAPTURED = "field_captured"
    EMAIL_CONFIRMED = "email_confirmed"
    EMAIL_REJECTED = "email_rejected"
    NEW_CLIENT = "new_client"
    RETURNING_CLIENT = "returning_client"
    DETAILS_CONFIRMED = "details_confirmed"
    DETAILS_REJECTED = "details_rejected"
    NO_RESPONSE = "no_response"


T = TransitionTrigger


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""

    from_state: ConversationState
    to_state: ConversationState
    trigger: TransitionTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""

    state: ConversationState
    entered_at: datetime
    trigger: Optional[TransitionTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


def _field_chain(states: list[ConversationState]) -> list[Transition]:
    return [Transition(a, b, T.FIELD_CAPTURED) for a, b in zip(states, states[1:])]


def _intent_routes(from_state: ConversationState) -> list[Transition]:
    return [
        Transition(from_state, S.CALENDAR_CHECK, T.INTENT_APPOINTMENT),
        Transition(from_state, S.MESSAGE_FIRST_NAME, T.INTENT_MESSAGE),
        Transition(from_state, S.INQUIRY, T.INTENT_INQUIRY),
        Transition(from_state, S.OFFICE_HOURS_QUESTION, T.INTENT_OFFICE_HOURS),
        Transition(from_state, S.CALLBACK_END, T.INTENT_CALLBACK),
    ]


class ConversationStateMachine:
    """
    Deterministic state machine for one call.

    The controller decides which trigger applies; this class only checks
    that the move is allowed and keeps the visit history.
    """

    TRANSITIONS: list[Transition] = [
        # --- Greeting ---
        Transition(S.GREETING, S.AWAITING_INTENT, T.GREETING_DELIVERED),

        # --- Intent routing ---
        *_intent_routes(S.AWAITING_INTENT),
        Transition(S.AWAITING_INTENT, S.INTENT_CLARIFICATION, T.INTENT_UNCLEAR),
        *_intent_routes(S.INTENT_CLARIFICATION),
        Transition(S.INTENT_CLARIFICATION, S.CALENDAR_CHECK, T.DEFAULT_TO_APPOINTMENT),

        # --- Info branch: message, goodbye, or back to classification ---
        Transition(S.INQUIRY, S.MESSAGE_FIRST_NAME, T.MESSAGE_ACCEPTED),
        Transition(S.INQUIRY, S.DECLINED, T.CALLER_DECLINED),
        Transition(S.INQUIRY, S.AWAITING_INTENT, T.RECLASSIFY),
        Transition(S.OFFICE_HOURS_QUESTION, S.MESSAGE_FIRST_NAME, T.MESSAGE_ACCEPTED),
        Transition(S.OFFICE_HOURS_QUESTION, S.DECLINED, T.CALLER_DECLINED),
        Transition(S.OFFICE_HOURS_QUESTION, S.AWAITING_INTENT, T.RECLASSIFY),

        # --- Slot search ---
        Transition(S.CALENDAR_CHECK, S.OFFER_SLOTS, T.SLOTS_FOUND),
        Transition(S.CALENDAR_CHECK, S.MESSAGE_FALLBACK_INTRO, T.NO_SLOTS),
        Transition(S.OFFER_SLOTS, S.APPOINTMENT_FIRST_NAME, T.SLOT_ACCEPTED),
        Transition(S.OFFER_SLOTS, S.ASK_PREFERRED_TIME, T.SLOT_REJECTED),
        Transition(S.OFFER_SLOTS, S.MESSAGE_FALLBACK_INTRO, T.REJECTIONS_EXHAUSTED),
        Transition(S.OFFER_SLOTS, S.CALENDAR_CHECK, T.TIME_PREFERENCE_GIVEN),
        Transition(S.ASK_PREFERRED_TIME, S.CALENDAR_CHECK, T.TIME_PREFERENCE_GIVEN),
        Transition(S.MESSAGE_FALLBACK_INTRO, S.MESSAGE_FIRST_NAME, T.MESSAGE_ACCEPTED),
        Transition(S.MESSAGE_FALLBACK_INTRO, S.DECLINED, T.CALLER_DECLINED),

        # --- Appointment details ---
        *_field_chain([
            S.APPOINTMENT_FIRST_NAME, S.APPOINTMENT_LAST_NAME, S.APPOINTMENT_PHONE,
            S.APPOINTMENT_EMAIL, S.APPOINTMENT_EMAIL_CONFIRM,
        ]),
        Transition(S.APPOINTMENT_EMAIL_CONFIRM, S.APPOINTMENT_PRIOR_CLIENT, T.EMAIL_CONFIRMED),
        Transition(S.APPOINTMENT_EMAIL_CONFIRM, S.APPOINTMENT_EMAIL, T.EMAIL_REJECTED),
        Transition(S.APPOINTMENT_PRIOR_CLIENT, S.APPOINTMENT_REFERRAL, T.NEW_CLIENT),
        Transition(S.APPOINTMENT_PRIOR_CLIENT, S.APPOINTMENT_CALL_REASON, T.RETURNING_CLIENT),
        *_field_chain([
            S.APPOINTMENT_REFERRAL, S.APPOINTMENT_CALL_REASON, S.APPOINTMENT_CONFIRM,
        ]),
        Transition(S.APPOINTMENT_CONFIRM, S.APPOINTMENT_COMPLETE, T.DETAILS_CONFIRMED),
        Transition(S.APPOINTMENT_CONFIRM, S.APPOINTMENT_FIRST_NAME, T.DETAILS_REJECTED),

        # --- Message details ---
        *_field_chain([
            S.MESSAGE_FIRST_NAME, S.MESSAGE_LAST_NAME, S.MESSAGE_PHONE,
            S.MESSAGE_EMAIL, S.MESSAGE_EMAIL_CONFIRM,
        ]),
        Transition(S.MESSAGE_EMAIL_CONFIRM, S.MESSAGE_CONTENT, T.EMAIL_CONFIRMED),
        Transition(S.MESSAGE_EMAIL_CONFIRM, S.MESSAGE_EMAIL, T.EMAIL_REJECTED),
        *_field_chain([S.MESSAGE_CONTENT, S.MESSAGE_CONFIRM]),
        Transition(S.MESSAGE_CONFIRM, S.MESSAGE_COMPLETE, T.DETAILS_CONFIRMED),
        Transition(S.MESSAGE_CONFIRM, S.MESSAGE_FIRST_NAME, T.DETAILS_REJECTED),
        *[
            Transition(state, S.AWAITING_INTENT, T.RECLASSIFY)
            for state in (S.MESSAGE_FIRST_NAME, S.MESSAGE_LAST_NAME,
                          S.MESSAGE_PHONE, S.MESSAGE_EMAIL)
        ],

        # --- Caller went silent ---
        *[
            Transition(state, S.DECLINED, T.NO_RESPONSE)
            for state in ConversationState
            if state not in TERMINAL_STATES and state != S.GREETING
        ],
    ]

    def __init__(self) -> None:
        self._current_state = ConversationState.GREETING
        self._history: list[StateEntry] = [
            StateEntry(state=ConversationState.GREETING, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> ConversationState:
        return self._current_state

    def transition(self, trigger: TransitionTrigger) -> ConversationState:
        """
        Execute a state transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new conversation state.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "State transition: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        """Return the full state transition history."""
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        """Check if the call has reached a terminal state."""
        return self._current_state in TERMINAL_STATES


def successors(state: ConversationState) -> set[ConversationState]:
    """All states directly reachable from ``state``."""
    return {
        t.to_state for t in ConversationStateMachine.TRANSITIONS if t.from_state == state
    }
