"""
tests/test_suggestion_generator.py — Per-date Generation & Deadline
=====================================================================
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from commonroom.engine.prompts import CommunitySnapshot, PastEventSnapshot
from commonroom.errors import UpstreamUnavailable
from commonroom.services.completion_client import CompletionClient
from commonroom.services.suggestion_generator import SuggestionGenerator
from tests.factories import REFERENCE_TARGETS, completion_json

SATURDAY = REFERENCE_TARGETS[0]


def _community(events: int = 5) -> CommunitySnapshot:
    return CommunitySnapshot(
        id="c1",
        name="Sunrise PG",
        residents_count=12,
        past_events=tuple(
            PastEventSnapshot(
                id=f"e{i}", title=f"Event {i}", type="SOCIAL",
                engagement=80, attendance_rate=75, rating=4.2,
            )
            for i in range(events)
        ),
    )


class TestGenerateForDate:
    def test_parses_valid_reply(self, generator: SuggestionGenerator, completion):
        draft = generator.generate_for_date(_community(), SATURDAY, timeout=7)
        assert draft.title == "Rooftop Movie Marathon"
        assert draft.suggested_date == SATURDAY.date
        assert draft.based_on_event_ids == ["e0", "e1", "e2"]
        prompt = completion.complete.call_args.args[0]
        assert "Weekend Saturday" in prompt
        assert completion.complete.call_args.kwargs == {"timeout": 7}

    @pytest.mark.parametrize(
        "reply",
        ["", "Sorry, I cannot do that.", '{"title": "half"', completion_json(title="")],
    )
    def test_malformed_reply_falls_back_without_retry(
        self, generator: SuggestionGenerator, completion, reply
    ):
        completion.complete.return_value = reply
        draft = generator.generate_for_date(_community(), SATURDAY)
        assert draft.is_fallback
        assert draft.title == "Weekend Saturday Community Event"
        assert draft.expected_engagement == 75
        assert completion.complete.call_count == 1

    def test_upstream_failure_propagates(self, generator: SuggestionGenerator, completion):
        completion.complete.side_effect = UpstreamUnavailable("AI service not available")
        with pytest.raises(UpstreamUnavailable):
            generator.generate_for_date(_community(), SATURDAY)


class TestGenerateBatch:
    def test_one_draft_per_target_in_order(self, generator: SuggestionGenerator, completion):
        drafts = generator.generate_batch(_community(), REFERENCE_TARGETS, budget_seconds=90)
        assert [d.suggested_date for d in drafts] == [t.date for t in REFERENCE_TARGETS]
        assert completion.complete.call_count == 3

    def test_unavailable_client_short_circuits(self, generator: SuggestionGenerator, completion):
        completion.is_available = False
        with pytest.raises(UpstreamUnavailable, match="AI service not available"):
            generator.generate_batch(_community(), REFERENCE_TARGETS, budget_seconds=90)
        completion.complete.assert_not_called()

    def test_mid_batch_failure_aborts_whole_batch(self, generator: SuggestionGenerator, completion):
        completion.complete.side_effect = [
            completion_json(),
            UpstreamUnavailable("AI service not available"),
        ]
        with pytest.raises(UpstreamUnavailable):
            generator.generate_batch(_community(), REFERENCE_TARGETS, budget_seconds=90)

    def test_deadline_caps_each_call_and_aborts_when_spent(self):
        client = MagicMock(spec=CompletionClient)
        client.is_available = True
        client.complete.return_value = completion_json()
        ticks = iter([0.0, 0.0, 70.0, 95.0])
        generator = SuggestionGenerator(client, call_timeout=30, monotonic=lambda: next(ticks))

        with pytest.raises(UpstreamUnavailable, match="deadline exceeded"):
            generator.generate_batch(_community(), REFERENCE_TARGETS, budget_seconds=90)

        timeouts = [c.kwargs["timeout"] for c in client.complete.call_args_list]
        assert timeouts == [30, 20]
