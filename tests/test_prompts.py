"""
Tests for prompt builders, the scenario table and cost estimates.
"""

import pytest

from core.models import ScenarioId, Speaker, Turn
from core.prompts import DefaultPromptFactory
from core.prompts.common import render_transcript
from core.prompts.scenarios import (
    GENERIC_FALLBACK,
    SALES_SCENARIOS,
    fallback_line,
    get_scenario,
    is_known_scenario,
    opening_line,
)
from core.services.pricing import estimate_cost, estimate_tts_cost, session_cost


class TestScenarios:
    def test_every_scenario_is_complete(self):
        for scenario_id, scenario in SALES_SCENARIOS.items():
            assert scenario.id is scenario_id
            assert scenario.opening_line
            assert scenario.fallback_line
            assert len(scenario.objectives) == 5

    def test_unknown_id_resolves_to_default(self):
        assert get_scenario("mystery").id is ScenarioId.COLD_CALLING
        assert opening_line("mystery") == opening_line("cold_calling")
        assert not is_known_scenario("mystery")

    def test_fallback_lines(self):
        assert fallback_line("upsell") == SALES_SCENARIOS[ScenarioId.UPSELL].fallback_line
        assert fallback_line("mystery") == GENERIC_FALLBACK


class TestPromptFactory:
    def test_exchange_frames_directive_as_first_turn(self):
        prompts = DefaultPromptFactory()
        history = [{"role": "assistant", "content": "Hello?"}]
        messages = prompts.assemble_exchange(directive="Be a customer.", history=history)
        assert messages == [
            {"role": "user", "content": "Be a customer."},
            {"role": "assistant", "content": prompts.directive_acknowledgement()},
            {"role": "assistant", "content": "Hello?"},
        ]

    def test_feedback_instruction_embeds_transcript_and_schema(self):
        text = DefaultPromptFactory().feedback_instruction(
            scenario_id=ScenarioId.UPSELL, transcript="Customer: Hi"
        )
        assert "upsell conversation" in text
        assert "Customer: Hi" in text
        assert '"scenarioFeedback"' in text
        assert "{{" not in text

    def test_render_transcript_labels_speakers(self):
        turns = [Turn(Speaker.CUSTOMER, "Hello?"), Turn(Speaker.TRAINEE, "Hi!")]
        assert render_transcript(turns) == "Customer: Hello?\nSalesperson: Hi!"

    def test_render_transcript_keeps_the_tail(self):
        turns = [Turn(Speaker.TRAINEE, "x" * 50), Turn(Speaker.CUSTOMER, "last words")]
        text = render_transcript(turns, max_chars=30)
        assert len(text) == 30
        assert text.endswith("Customer: last words")


class TestPricing:
    def test_known_model(self):
        assert estimate_cost("gpt-4o-mini", 1_000_000, 1_000_000) == pytest.approx(0.75)

    def test_unknown_model_is_free(self):
        assert estimate_cost("mystery", 500, 500) == 0.0

    def test_tts_cost(self):
        assert estimate_tts_cost("tts-1", 1_000_000) == pytest.approx(15.0)

    def test_session_cost_sums_chat_and_voice(self):
        cost = session_cost(
            chat_model="gpt-4o-mini",
            tts_model="tts-1",
            tokens_in=1_000_000,
            tokens_out=0,
            chars_spoken=1_000_000,
        )
        assert cost == pytest.approx(15.15)
