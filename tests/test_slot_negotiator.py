"""Tests for reading replies to a slot offer and choosing what to offer."""

from datetime import timedelta

import pytest

from receptionist.conversation.slot_negotiator import DecisionKind, resolve_response, select_offers
from receptionist.conversation.time_preference import NOON, SearchWindow, default_window
from tests.conftest import FIXED_NOW, default_slots, make_slot


@pytest.fixture
def offered():
    return [make_slot(20, 11), make_slot(20, 11, 15), make_slot(21, 14)]


class TestResolveResponse:
    @pytest.mark.parametrize("text", ["yes", "Sure, that works", "sounds good to me", "book it"])
    def test_affirmative_accepts_first_offer(self, offered, text):
        decision = resolve_response(text, offered)
        assert decision.kind == DecisionKind.ACCEPT
        assert decision.slot == offered[0]

    def test_ordinal_word(self, offered):
        decision = resolve_response("the second one", offered)
        assert decision.kind == DecisionKind.ACCEPT
        assert decision.slot == offered[1]

    def test_ordinal_option_number(self, offered):
        decision = resolve_response("option three please", offered)
        assert decision.slot == offered[2]

    def test_ordinal_beyond_offers_is_ambiguous(self, offered):
        assert resolve_response("the fifth one", offered).kind == DecisionKind.AMBIGUOUS

    def test_first_thing_is_not_an_ordinal(self, offered):
        decision = resolve_response("first thing in the morning", offered)
        assert decision.kind == DecisionKind.TIME_PREFERENCE
        assert decision.preference == "first thing in the morning"

    def test_time_expression_beats_negative(self, offered):
        decision = resolve_response("no, how about Thursday", offered)
        assert decision.kind == DecisionKind.TIME_PREFERENCE
        assert decision.preference == "no, how about Thursday"

    @pytest.mark.parametrize("text", ["no", "nope", "that doesn't work", "not good"])
    def test_negative_rejects(self, offered, text):
        assert resolve_response(text, offered).kind == DecisionKind.REJECT

    @pytest.mark.parametrize("text", ["hmm let me think", "", None])
    def test_ambiguous(self, offered, text):
        assert resolve_response(text, offered).kind == DecisionKind.AMBIGUOUS

    def test_nothing_offered_is_ambiguous(self):
        assert resolve_response("yes", []).kind == DecisionKind.AMBIGUOUS


class TestSelectOffers:
    def test_earliest_first(self):
        slots = list(reversed(default_slots()))
        offers = select_offers(slots, default_window(FIXED_NOW, 14), limit=2)
        assert offers == [make_slot(20, 11), make_slot(20, 11, 15)]

    def test_rejected_slots_excluded(self):
        rejected = [make_slot(20, 11).iso]
        offers = select_offers(default_slots(), default_window(FIXED_NOW, 14), rejected)
        assert make_slot(20, 11) not in offers
        assert offers[0] == make_slot(20, 11, 15)

    def test_window_filters_time_of_day(self):
        window = SearchWindow(start=FIXED_NOW, end=FIXED_NOW + timedelta(days=14), earliest_minute=NOON)
        offers = select_offers(default_slots(), window)
        assert all(slot.start.hour >= 12 for slot in offers)
        assert len(offers) == 3

    def test_nothing_in_window(self):
        window = SearchWindow(start=FIXED_NOW, end=FIXED_NOW + timedelta(hours=1))
        assert select_offers(default_slots(), window) == []
