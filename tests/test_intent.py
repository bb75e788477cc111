"""Tests for intent classification: oracle first, keywords as fallback."""

import pytest

from receptionist.conversation.intent import IntentClassifier, classify_by_keywords
from receptionist.schemas.call_schema import Intent
from tests.conftest import StubOracle


class TestKeywordRules:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("I'd like to book an appointment", Intent.APPOINTMENT),
            ("can I schedule a consultation", Intent.APPOINTMENT),
            ("I want to leave a message", Intent.MESSAGE),
            ("can I speak to someone", Intent.INQUIRY),
            ("what are your office hours", Intent.OFFICE_HOURS_QUESTION),
            ("I'll call back later", Intent.CALLBACK),
            ("hmm", Intent.UNCLEAR),
            ("", Intent.UNCLEAR),
        ],
    )
    def test_classification(self, text, expected):
        assert classify_by_keywords(text) == expected

    def test_inquiry_wins_over_booking(self):
        assert classify_by_keywords("can I talk to someone about booking") == Intent.INQUIRY

    def test_office_hours_wins_over_booking(self):
        assert classify_by_keywords("what time can I book") == Intent.OFFICE_HOURS_QUESTION


class TestIntentClassifier:
    @pytest.mark.asyncio
    async def test_no_oracle_uses_keywords(self):
        result = await IntentClassifier().classify("I want to leave a message")
        assert result.intent == Intent.MESSAGE
        assert result.source == "keywords"

    @pytest.mark.asyncio
    async def test_confident_oracle_wins(self):
        oracle = StubOracle(label="appointment", confidence=0.95)
        result = await IntentClassifier(oracle=oracle).classify("I have a tax question")
        assert result.intent == Intent.APPOINTMENT
        assert result.source == "oracle"
        assert oracle.calls == ["I have a tax question"]

    @pytest.mark.asyncio
    async def test_speak_to_person_maps_to_inquiry(self):
        oracle = StubOracle(label="speak_to_person", confidence=0.8)
        result = await IntentClassifier(oracle=oracle).classify("get me a human")
        assert result.intent == Intent.INQUIRY

    @pytest.mark.asyncio
    async def test_low_confidence_falls_back(self):
        oracle = StubOracle(label="appointment", confidence=0.3)
        result = await IntentClassifier(oracle=oracle).classify("I want to leave a message")
        assert result.intent == Intent.MESSAGE
        assert result.source == "keywords"

    @pytest.mark.asyncio
    async def test_unclear_oracle_falls_back_to_keywords(self):
        oracle = StubOracle(label="unclear", confidence=0.99)
        result = await IntentClassifier(oracle=oracle).classify("what are your office hours")
        assert result.intent == Intent.OFFICE_HOURS_QUESTION

    @pytest.mark.asyncio
    async def test_unknown_label_falls_back(self):
        oracle = StubOracle(label="billing", confidence=0.99)
        result = await IntentClassifier(oracle=oracle).classify("book an appointment")
        assert result.intent == Intent.APPOINTMENT
        assert result.source == "keywords"

    @pytest.mark.asyncio
    async def test_oracle_error_falls_back(self):
        oracle = StubOracle(error=RuntimeError("rate limited"))
        result = await IntentClassifier(oracle=oracle).classify("I'll call back later")
        assert result.intent == Intent.CALLBACK

    @pytest.mark.asyncio
    async def test_oracle_timeout_falls_back(self):
        oracle = StubOracle(label="message", delay=0.5)
        classifier = IntentClassifier(oracle=oracle, timeout_sec=0.01)
        result = await classifier.classify("book an appointment")
        assert result.intent == Intent.APPOINTMENT
        assert result.source == "keywords"

    @pytest.mark.asyncio
    async def test_empty_utterance_skips_oracle(self):
        oracle = StubOracle(label="appointment")
        result = await IntentClassifier(oracle=oracle).classify("   ")
        assert result.intent == Intent.UNCLEAR
        assert oracle.calls == []
