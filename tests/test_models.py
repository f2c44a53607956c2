"""
Unit tests for the shared data shapes in core.models.
"""

import pytest

from core.models import (
    FeedbackReport,
    ScenarioId,
    Speaker,
    Transcript,
    Turn,
)


class TestTurn:
    def test_rejects_blank_text(self):
        """Test a turn never carries empty or whitespace-only text."""
        with pytest.raises(ValueError):
            Turn(Speaker.TRAINEE, "   ")

    def test_message_mapping(self):
        """Test trainee maps to 'user' and customer to 'assistant'."""
        assert Turn(Speaker.TRAINEE, "Hi").to_message() == {"role": "user", "content": "Hi"}
        assert Turn(Speaker.CUSTOMER, "Yes?").to_message() == {
            "role": "assistant",
            "content": "Yes?",
        }

    def test_from_message_accepts_role_strings(self):
        turn = Turn.from_message({"role": "assistant", "content": "Hello"})
        assert turn.speaker is Speaker.CUSTOMER


class TestTranscript:
    def test_append_keeps_order(self):
        """Test turns come back in the order they were appended."""
        transcript = Transcript()
        transcript.append(Turn(Speaker.CUSTOMER, "one"))
        transcript.append(Turn(Speaker.TRAINEE, "two"))
        transcript.append(Turn(Speaker.CUSTOMER, "three"))
        assert [t.text for t in transcript] == ["one", "two", "three"]
        assert transcript[1].speaker == Speaker.TRAINEE

    def test_rejects_non_turns(self):
        with pytest.raises(TypeError):
            Transcript().append({"role": "user", "content": "hi"})

    def test_snapshot_is_detached(self):
        """Test later appends do not leak into an earlier snapshot."""
        transcript = Transcript([Turn(Speaker.CUSTOMER, "Hello")])
        snap = transcript.snapshot()
        transcript.append(Turn(Speaker.TRAINEE, "Hi"))
        assert len(snap) == 1
        assert len(transcript) == 2

    def test_json_keeps_order_and_speakers(self):
        """Test the stored form reloads to an equal transcript."""
        transcript = Transcript(
            [
                Turn(Speaker.CUSTOMER, "Who's calling?"),
                Turn(Speaker.TRAINEE, "It's Sam from Acme — quick question."),
            ]
        )
        assert Transcript.from_json(transcript.to_json()) == transcript

    def test_from_json_empty(self):
        assert len(Transcript.from_json("")) == 0


class TestScenarioId:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("cold_calling", ScenarioId.COLD_CALLING),
            ("  UPSELL ", ScenarioId.UPSELL),
            (ScenarioId.DEMO_PITCH, ScenarioId.DEMO_PITCH),
            ("mystery", ScenarioId.COLD_CALLING),
            (None, ScenarioId.COLD_CALLING),
        ],
    )
    def test_parse(self, raw, expected):
        """Test known ids resolve and unknown ids fall back to the default."""
        assert ScenarioId.parse(raw) is expected

    def test_label(self):
        assert ScenarioId.DEMO_PITCH.label == "demo pitch"


class TestFeedbackReport:
    def test_dict_uses_camel_case_commentary(self):
        report = FeedbackReport(score=80, scenario_feedback="Nice.")
        data = report.to_dict()
        assert data["scenarioFeedback"] == "Nice."
        assert FeedbackReport.from_dict(data) == report

    def test_from_dict_accepts_snake_case(self):
        report = FeedbackReport.from_dict({"score": "64", "scenario_feedback": "Ok"})
        assert report.score == 64
        assert report.scenario_feedback == "Ok"
        assert report.strengths == []
