"""
Receptionist entry point.

Wires the conversation controller to the configured collaborators and
runs it behind the console transport:

- Cal.com when CALCOM_API_KEY and CALCOM_EVENT_TYPE_ID are set, otherwise
  the in-memory office-hours calendar.
- OpenAI intent oracle when OPENAI_API_KEY is set, otherwise keywords only.
- Webhook notifications when NOTIFICATION_WEBHOOK_URL is set, otherwise
  events are kept in memory.

Usage:
    python main.py            # interactive console with configured services
    python main.py --offline  # same, with every collaborator in memory
"""

import argparse
import logging

from receptionist.config import AppConfig, settings
from receptionist.conversation.controller import ConversationController
from receptionist.conversation.dispatcher import OutcomeDispatcher
from receptionist.conversation.intent import IntentClassifier
from receptionist.conversation.session_store import CallSessionStore
from receptionist.integrations.calendar import CalendarService, InMemoryCalendar
from receptionist.integrations.notifications import (
    InMemoryNotificationSink,
    NotificationSink,
    WebhookNotificationSink,
)

logger = logging.getLogger(__name__)


def _build_calendar(config: AppConfig, offline: bool) -> CalendarService:
    cal = config.calendar
    if cal.calcom_configured and not offline:
        from receptionist.integrations.calcom import CalComCalendar

        logger.info("Using Cal.com calendar (event type %s)", cal.calcom_event_type_id)
        return CalComCalendar(cal)
    logger.info("Using in-memory calendar")
    return InMemoryCalendar(timezone=cal.timezone, slot_minutes=cal.slot_minutes)


def _build_classifier(config: AppConfig, offline: bool) -> IntentClassifier:
    intent = config.intent
    oracle = None
    if intent.openai_api_key and not offline:
        from openai import AsyncOpenAI

        from receptionist.integrations.openai_oracle import OpenAIIntentOracle

        oracle = OpenAIIntentOracle(
            AsyncOpenAI(api_key=intent.openai_api_key),
            model=intent.model,
            temperature=intent.temperature,
        )
        logger.info("Using OpenAI intent oracle (%s)", intent.model)
    else:
        logger.info("No intent oracle configured, classifying by keywords")
    return IntentClassifier(
        oracle=oracle,
        confidence_threshold=intent.confidence_threshold,
        timeout_sec=intent.timeout_sec,
    )


def _build_sink(config: AppConfig, offline: bool) -> NotificationSink:
    notifications = config.notifications
    if notifications.webhook_url and not offline:
        logger.info("Sending notifications to webhook")
        return WebhookNotificationSink(notifications.webhook_url, notifications.timeout_sec)
    logger.info("Keeping notifications in memory")
    return InMemoryNotificationSink()


def build_controller(config: AppConfig = settings, offline: bool = False) -> ConversationController:
    """Build a controller wired to the configured (or in-memory) services."""
    calendar = _build_calendar(config, offline)
    dispatcher = OutcomeDispatcher(
        calendar,
        _build_sink(config, offline),
        calendar_timeout=config.calendar.timeout_sec,
        notify_timeout=config.notifications.timeout_sec,
    )
    return ConversationController(
        store=CallSessionStore(),
        classifier=_build_classifier(config, offline),
        calendar=calendar,
        dispatcher=dispatcher,
        config=config,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Phone receptionist console")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Ignore configured services and keep everything in memory",
    )
    args = parser.parse_args()

    from console_demo import ConsoleSession

    session = ConsoleSession(build_controller(settings, offline=args.offline))
    try:
        session.run()
    finally:
        session.close()


if __name__ == "__main__":
    main()
