"""Per-call conversation record."""

from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from receptionist.config import settings
from receptionist.conversation.field_policy import RetryCounter
from receptionist.conversation.state_machine import ConversationState, ConversationStateMachine
from receptionist.schemas.booking_schema import ContactDetails, Slot
from receptionist.schemas.call_schema import CallOutcome, Intent, Speaker, TranscriptTurn


def _history() -> deque:
    return deque(maxlen=settings.conversation.history_window)


@dataclass
class CallRecord:
    """
    Everything known about one call.

    Only the controller mutates a record. Extractors and the slot
    negotiator return proposed values and never see it.
    """

    call_id: str
    fsm: ConversationStateMachine = field(default_factory=ConversationStateMachine)
    intent: Optional[Intent] = None

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email_candidate: Optional[str] = None
    email: Optional[str] = None
    prior_client: Optional[str] = None
    referral_source: Optional[str] = None
    call_reason: Optional[str] = None
    message_content: Optional[str] = None

    offered_slots: list[Slot] = field(default_factory=list)
    selected_slot: Optional[Slot] = None
    slot_rejection_count: int = 0
    rejected_slot_isos: list[str] = field(default_factory=list)
    time_preference: Optional[str] = None
    calendar_announced: bool = False

    retries: dict[str, RetryCounter] = field(default_factory=dict)
    silent_turns: int = 0

    booking_dispatched: bool = False
    message_dispatched: bool = False
    ended: bool = False
    outcome: Optional[CallOutcome] = None

    history: deque = field(default_factory=_history)

    @property
    def state(self) -> ConversationState:
        return self.fsm.current_state

    def retry_counter(self, field_name: str) -> RetryCounter:
        return self.retries.setdefault(field_name, RetryCounter())

    def add_turn(self, speaker: Speaker, text: str) -> None:
        self.history.append(TranscriptTurn(speaker=speaker, text=text, state=self.state.value))

    def clear_fields(self, names: tuple[str, ...]) -> None:
        for name in names:
            setattr(self, name, None)
            self.retries.pop(name, None)

    def contact(self) -> ContactDetails:
        return ContactDetails(
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            phone=self.phone or "",
            email=self.email or self.email_candidate or "",
            notes=self.call_reason or self.message_content or "",
        )
