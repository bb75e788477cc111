from receptionist.conversation.extractors import (
    extract_email,
    extract_free_text,
    extract_name,
    extract_phone,
)
from receptionist.conversation.slot_negotiator import DecisionKind, SlotDecision, resolve_response
from receptionist.conversation.state_machine import (
    ConversationState,
    ConversationStateMachine,
    TransitionTrigger,
)

__all__ = [
    "ConversationStateMachine",
    "ConversationState",
    "TransitionTrigger",
    "DecisionKind",
    "SlotDecision",
    "resolve_response",
    "extract_name",
    "extract_email",
    "extract_phone",
    "extract_free_text",
]
