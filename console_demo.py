"""
Offline console demo: plays a phone call in the terminal.

Drives the real conversation controller with the in-memory calendar and
notification sink. No API keys, no network calls. An empty line stands for
a silent turn, which the calendar check needs to run its query.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario message
"""

import argparse
import asyncio
import uuid
from typing import Optional

from receptionist.config import settings
from receptionist.conversation.controller import ConversationController
from receptionist.conversation.dispatcher import OutcomeDispatcher
from receptionist.conversation.intent import IntentClassifier
from receptionist.conversation.session_store import CallSessionStore
from receptionist.integrations.calendar import InMemoryCalendar
from receptionist.integrations.notifications import InMemoryNotificationSink
from receptionist.schemas.call_schema import TurnReply

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


def build_offline_controller() -> tuple[ConversationController, InMemoryNotificationSink]:
    calendar = InMemoryCalendar(
        timezone=settings.calendar.timezone, slot_minutes=settings.calendar.slot_minutes,
    )
    sink = InMemoryNotificationSink()
    controller = ConversationController(
        store=CallSessionStore(),
        classifier=IntentClassifier(),
        calendar=calendar,
        dispatcher=OutcomeDispatcher(calendar, sink),
    )
    return controller, sink


class ConsoleSession:
    """One simulated phone call in the terminal."""

    # Pre-scripted scenarios for --scenario flag. "" is a silent turn.
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "I'd like to book an appointment",
            "",
            "yes",
            "John",
            "Smith",
            "5551234567",
            "john at gmail dot com",
            "yes",
            "no",
            "a friend",
            "tax help",
            "yes",
        ],
        "reschedule": [
            "can I schedule a consultation",
            "",
            "no",
            "Thursday afternoon",
            "",
            "that works",
            "Maria",
            "Lopez",
            "five five five two two two three three three three",
            "m a r i a at yahoo dot com",
            "yes",
            "yes I have",
            "quarterly taxes",
            "yes",
        ],
        "message": [
            "I want to leave a message",
            "Jane",
            "Doe",
            "555 987 6543",
            "jane dot doe at outlook dot com",
            "correct",
            "Please call me about my tax return",
            "yes",
        ],
        "office_hours": [
            "what are your office hours",
            "no thanks, bye",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(
        self,
        controller: Optional[ConversationController] = None,
        sink: Optional[InMemoryNotificationSink] = None,
    ) -> None:
        if controller is None:
            controller, sink = build_offline_controller()
        self.controller = controller
        if sink is None and isinstance(controller.dispatcher.sink, InMemoryNotificationSink):
            sink = controller.dispatcher.sink
        self.sink = sink
        self.call_id = f"console-{uuid.uuid4().hex[:8]}"
        self._loop = asyncio.new_event_loop()

    def agent_say(self, text: str) -> None:
        if text:
            print(f"{GREEN}{BOLD}[Receptionist]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _turn(self, utterance: str) -> TurnReply:
        reply = self._loop.run_until_complete(
            self.controller.handle_turn(self.call_id, utterance)
        )
        self.agent_say(reply.text)
        if reply.state:
            self.system_log(f"State: {reply.state}")
        return reply

    def hang_up(self) -> None:
        self._loop.run_until_complete(self.controller.end_call(self.call_id))

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  PHONE RECEPTIONIST - {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _summary(self, title: str) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        record = self.controller.store.ended_record(self.call_id)
        if record is not None:
            outcome = record.outcome.value if record.outcome else "unknown"
            print(f"{DIM}  Outcome: {outcome}{RESET}")
            print(f"{DIM}  State trace: {' -> '.join(record.fsm.get_state_trace())}{RESET}")
        if self.sink is not None:
            for event in self.sink.events:
                print(f"{DIM}  Event: {event.model_dump_json()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if steps is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        reply = self._turn("")
        for step in steps:
            if reply.end_call:
                break
            print(f"\n{BLUE}[Caller] {RESET}{step or DIM + '(silence)' + RESET}")
            reply = self._turn(step)
        self._summary(f"Scenario '{scenario}' complete.")

    def run(self) -> None:
        self._banner("Console")
        print(f"{DIM}  Type 'quit' to exit. Press Enter on an empty line for silence.{RESET}\n")

        reply = self._turn("")
        while not reply.end_call:
            user_input = input(f"\n{BLUE}[Caller] {RESET}").strip()
            if user_input.lower() in ("quit", "exit", "q"):
                self.hang_up()
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue
            reply = self._turn(user_input)

        self._summary("Call complete.")

    def close(self) -> None:
        self._loop.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    try:
        if args.scenario:
            session.run_scenario(args.scenario)
        else:
            session.run()
    finally:
        session.close()


if __name__ == "__main__":
    main()
