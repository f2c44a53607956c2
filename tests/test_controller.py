"""
Unit tests for core.controller.SessionController.
"""

import threading

import pytest

from core.models import DEFAULT_FEEDBACK, ScenarioId, Speaker, TurnPhase, ValidationError
from core.prompts.scenarios import GENERIC_FALLBACK, SALES_SCENARIOS

from fakes import FakeBackend, FakeNotifier

COLD_OPENING = SALES_SCENARIOS[ScenarioId.COLD_CALLING].opening_line
GOOD_FEEDBACK = (
    '{"score": 88, "strengths": ["Clear opener"], "improvements": ["Ask more"],'
    ' "recommendations": ["Book a follow-up"], "scenarioFeedback": "Solid call."}'
)


class TestMount:
    """Tests for the opening of a session."""

    def test_mount_speaks_scenario_opening(self, make_controller):
        """Test the customer's scripted opening is appended and spoken."""
        controller, parts = make_controller()
        assert controller.phase == TurnPhase.INITIALIZING

        controller.mount()

        assert controller.phase == TurnPhase.SPEAKING
        assert [t.text for t in controller.transcript] == [COLD_OPENING]
        assert controller.transcript[0].speaker == Speaker.CUSTOMER
        assert parts["backend"].requests == [COLD_OPENING]
        assert parts["player"].audible

    def test_mount_twice_is_noop(self, make_controller):
        """Test a second mount does not duplicate the opening."""
        controller, _ = make_controller()
        controller.mount()
        controller.mount()
        assert len(controller.transcript) == 1

    def test_playback_end_returns_to_idle(self, make_controller):
        """Test Speaking -> Idle when playback ends."""
        controller, parts = make_controller()
        controller.mount()
        parts["player"].finish()
        assert controller.phase == TurnPhase.IDLE

    def test_playback_error_returns_to_idle(self, make_controller):
        """Test Speaking -> Idle when playback errors, with the error surfaced."""
        controller, parts = make_controller()
        controller.mount()
        parts["player"].break_playback()
        assert controller.phase == TurnPhase.IDLE
        assert "Failed to play audio" in controller.last_error

    def test_synthesis_failure_does_not_stick_in_speaking(self, make_controller):
        """Test a failing synthesis endpoint leaves the session Idle."""
        controller, _ = make_controller(backend=FakeBackend(error=RuntimeError("503")))
        controller.mount()
        assert controller.phase == TurnPhase.IDLE
        assert not controller.synthesizer.speaking
        assert controller.last_error

    def test_unsupported_environment_is_terminal(self, make_controller):
        """Test missing speech capture degrades to the unsupported view."""
        controller, parts = make_controller(supported=False)
        controller.mount()

        assert controller.phase == TurnPhase.UNSUPPORTED
        assert parts["backend"].requests == []

        controller.toggle_mic()
        assert controller.phase == TurnPhase.UNSUPPORTED
        assert parts["engine"].started == 0
        assert controller.submit_text("hello") is None


class TestVoiceTurns:
    """Tests for the Idle -> Listening -> Processing -> Speaking cycle."""

    def test_cold_calling_scenario(self, make_controller):
        """Test opening, one trainee turn and one reply in order."""
        controller, parts = make_controller(replies=["Sure, what's this about?"])
        controller.mount()
        assert controller.transcript[0].text == COLD_OPENING

        reply = controller.submit_text("Hi, got a minute?")

        assert reply.text == "Sure, what's this about?"
        history = parts["chat_llm"].calls[0][2:]
        assert history == [
            {"role": "assistant", "content": COLD_OPENING},
            {"role": "user", "content": "Hi, got a minute?"},
        ]
        assert [m["role"] for m in controller.history()] == [
            "assistant",
            "user",
            "assistant",
        ]
        assert controller.phase == TurnPhase.SPEAKING

    def test_recognized_segment_drives_a_turn(self, make_controller):
        """Test a final recognizer segment moves Listening -> Processing -> Speaking."""
        controller, parts = make_controller(replies=["Go on."])
        controller.mount()
        parts["player"].finish()

        controller.toggle_mic()
        assert controller.phase == TurnPhase.LISTENING
        assert parts["engine"].started == 1

        parts["engine"].final("We help plants cut downtime.")

        assert controller.phase == TurnPhase.SPEAKING
        assert not controller.recognizer.capturing
        assert parts["engine"].aborted >= 1
        assert [t.text for t in controller.transcript] == [
            COLD_OPENING,
            "We help plants cut downtime.",
            "Go on.",
        ]

    def test_interim_results_are_not_appended(self, make_controller):
        """Test interim speech never reaches the transcript."""
        controller, parts = make_controller()
        controller.mount()
        parts["player"].finish()
        controller.toggle_mic()

        parts["engine"].push(("We help", False))

        assert controller.phase == TurnPhase.LISTENING
        assert len(controller.transcript) == 1

    def test_empty_final_segment_is_discarded(self, make_controller):
        """Test whitespace-only recognition is never appended."""
        controller, parts = make_controller()
        controller.mount()
        parts["player"].finish()
        controller.toggle_mic()

        parts["engine"].final("   ")

        assert controller.phase == TurnPhase.LISTENING
        assert len(controller.transcript) == 1
        assert parts["chat_llm"].calls == []

    def test_mic_toggle_stops_listening(self, make_controller):
        """Test Listening -> Idle on a second mic press, discarding late results."""
        controller, parts = make_controller()
        controller.mount()
        parts["player"].finish()

        controller.toggle_mic()
        controller.toggle_mic()
        parts["engine"].final("trailing words")

        assert controller.phase == TurnPhase.IDLE
        assert not controller.recognizer.capturing
        assert len(controller.transcript) == 1

    def test_mic_while_speaking_stops_playback_first(self, make_controller):
        """Test pressing the mic during playback silences the customer."""
        controller, parts = make_controller()
        controller.mount()
        assert parts["player"].audible

        controller.toggle_mic()

        assert not parts["player"].audible
        assert not controller.synthesizer.speaking
        assert controller.phase == TurnPhase.LISTENING

    def test_mic_failure_to_start_stays_idle(self, make_controller):
        """Test a capability error on start is not fatal."""
        controller, parts = make_controller()
        parts["engine"].fail_start = True
        controller.mount()
        parts["player"].finish()

        controller.toggle_mic()

        assert controller.phase == TurnPhase.IDLE
        assert not controller.recognizer.capturing

    def test_exchange_failure_uses_scenario_fallback(self, make_controller):
        """Test a failing completion endpoint yields the scenario fallback line."""
        controller, _ = make_controller(
            scenario_id="upsell", chat_error=ConnectionError("down")
        )
        controller.mount()
        reply = controller.submit_text("We have a new analytics tier.")
        assert reply.text == SALES_SCENARIOS[ScenarioId.UPSELL].fallback_line
        assert len(controller.transcript) == 3

    def test_unknown_scenario_uses_defaults(self, make_controller):
        """Test unknown ids fall back to the default scenario and generic line."""
        controller, _ = make_controller(
            scenario_id="mystery", chat_error=ConnectionError("down")
        )
        controller.mount()
        assert controller.transcript[0].text == COLD_OPENING

        reply = controller.submit_text("Hello there")
        assert reply.text == GENERIC_FALLBACK

    def test_invalid_input_is_rejected_without_append(self, make_controller):
        """Test oversized input is rejected and nothing is appended."""
        controller, parts = make_controller()
        controller.mount()
        parts["player"].finish()

        assert controller.submit_text("x" * 5000) is None
        assert len(controller.transcript) == 1
        assert controller.phase == TurnPhase.IDLE
        assert controller.last_error

    def test_pitch_figures_are_kept_verbatim(self, make_controller):
        """Test year ranges reach the model and the transcript unchanged."""
        controller, parts = make_controller()
        controller.mount()
        pitch = "From 2019-2023 we cut logistics costs for 300 plants."

        controller.submit_text(pitch)

        assert controller.transcript[1].text == pitch
        assert parts["chat_llm"].calls[0][-1]["content"] == pitch

    def test_pii_is_redacted_before_sending(self, make_controller):
        """Test e-mail addresses never reach the completion endpoint."""
        controller, parts = make_controller()
        controller.mount()
        controller.submit_text("Reach me at jane@example.com")
        sent = parts["chat_llm"].calls[0][-1]["content"]
        assert "jane@example.com" not in sent
        assert "[EMAIL]" in sent

    def test_reply_dropped_if_session_ends_mid_exchange(self, make_controller):
        """Test a teardown during the completion call discards the reply."""
        holder = {}
        controller, parts = make_controller(
            chat_hook=lambda: holder["c"].end_session(reason="navigation")
        )
        holder["c"] = controller
        controller.mount()

        assert controller.submit_text("Hi, got a minute?") is None
        assert [t.speaker for t in controller.transcript] == [
            Speaker.CUSTOMER,
            Speaker.TRAINEE,
        ]
        assert not parts["player"].audible
        assert parts["notifier"].calls == [controller.session_token]


class TestEndSession:
    """Tests for session teardown."""

    def test_end_session_stops_voice_io_then_notifies(self, make_controller):
        """Test teardown silences recognizer and synthesizer before notifying."""
        seen = {}

        def notifier(token):
            seen["capturing"] = controller.recognizer.capturing
            seen["speaking"] = controller.synthesizer.speaking

        controller, parts = make_controller(notifier=notifier)
        controller.mount()
        controller.toggle_mic()

        assert controller.end_session() is True
        assert seen == {"capturing": False, "speaking": False}
        assert controller.ended
        assert controller.phase == TurnPhase.IDLE

    def test_end_session_notifies_once(self, make_controller):
        """Test repeated teardown triggers notify exactly once."""
        controller, parts = make_controller()
        controller.mount()

        results = [
            controller.end_session("unmount"),
            controller.end_session("visibility hidden"),
            controller.end_session("navigation"),
        ]

        assert results == [True, False, False]
        assert parts["notifier"].calls == [controller.session_token]

    def test_concurrent_teardown_notifies_once(self, make_controller):
        """Test racing teardown triggers from several threads notify once."""
        notifier = FakeNotifier(delay=0.05)
        controller, _ = make_controller(notifier=notifier)
        controller.mount()
        barrier = threading.Barrier(3)

        def trigger(reason):
            barrier.wait()
            controller.end_session(reason)

        threads = [
            threading.Thread(target=trigger, args=(r,))
            for r in ("unmount", "visibility hidden", "navigation")
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert notifier.calls == [controller.session_token]

    def test_notifier_failure_is_swallowed(self, make_controller):
        """Test a failing teardown endpoint does not raise."""
        controller, _ = make_controller(notifier=FakeNotifier(error=OSError("offline")))
        controller.mount()
        assert controller.end_session() is True

    def test_no_turns_after_end(self, make_controller):
        """Test an ended session ignores mic and text input."""
        controller, parts = make_controller()
        controller.mount()
        controller.end_session()

        controller.toggle_mic()
        assert controller.submit_text("still there?") is None
        assert parts["engine"].started == 0
        assert len(controller.transcript) == 1

    def test_bind_lifecycle_registers_exit_hook(self, make_controller, monkeypatch):
        """Test the exit hook is registered once and removed on teardown."""
        registered, unregistered = [], []
        monkeypatch.setattr("core.controller.atexit.register", registered.append)
        monkeypatch.setattr("core.controller.atexit.unregister", unregistered.append)
        controller, parts = make_controller()

        controller.bind_lifecycle()
        controller.bind_lifecycle()
        assert len(registered) == 1

        registered[0]()
        assert unregistered == registered
        assert parts["notifier"].calls == [controller.session_token]


class TestRequestFeedback:
    """Tests for the end-of-session feedback request."""

    def test_rejects_empty_transcript(self, make_controller):
        """Test no request is sent for an empty transcript."""
        controller, parts = make_controller()
        with pytest.raises(ValidationError):
            controller.request_feedback()
        assert parts["scoring_llm"].calls == []
        assert len(controller.transcript) == 0

    def test_rejects_single_turn(self, make_controller):
        """Test no request is sent with only the opening line."""
        controller, parts = make_controller()
        controller.mount()
        before = controller.transcript.snapshot()

        with pytest.raises(ValidationError, match="have a conversation"):
            controller.request_feedback()

        assert parts["scoring_llm"].calls == []
        assert controller.transcript.snapshot() == before
        assert controller.phase == TurnPhase.SPEAKING

    def test_feedback_success_is_persisted(self, make_controller):
        """Test a scored session is stored and can be reloaded."""
        controller, parts = make_controller(scoring_replies=[GOOD_FEEDBACK])
        controller.mount()
        controller.submit_text("Hi, got a minute?")

        report = controller.request_feedback()

        assert report.score == 88
        assert controller.feedback == report
        record = parts["store"].load(controller.conversation_id, "trainee-1")
        assert record.score == 88
        assert record.transcript() == controller.transcript

    def test_feedback_silences_voice_io(self, make_controller):
        """Test playback and capture are stopped before scoring."""
        controller, parts = make_controller(scoring_replies=[GOOD_FEEDBACK])
        controller.mount()
        controller.submit_text("Hi, got a minute?")
        assert parts["player"].audible

        controller.request_feedback()

        assert not parts["player"].audible
        assert not controller.recognizer.capturing
        assert controller.phase == TurnPhase.IDLE

    def test_malformed_feedback_uses_default(self, make_controller):
        """Test non-JSON scoring output yields the documented default."""
        controller, _ = make_controller(
            scoring_replies=["Great call! You did really well overall."]
        )
        controller.mount()
        controller.submit_text("Hi, got a minute?")

        report = controller.request_feedback()

        assert report == DEFAULT_FEEDBACK
        assert report.score == 75

    def test_scoring_failure_keeps_session_resumable(self, make_controller):
        """Test a failing scoring endpoint surfaces an error and keeps going."""
        controller, parts = make_controller(
            replies=["Okay.", "Tell me the price."],
            scoring_error=TimeoutError("slow"),
        )
        controller.mount()
        controller.submit_text("Hi, got a minute?")

        assert controller.request_feedback() is None
        assert "Failed to generate feedback" in controller.last_error
        assert not controller.ended
        assert parts["notifier"].calls == []
        assert parts["store"].list_for_user("trainee-1") == []

        controller.submit_text("It saves you ten hours a week.")
        assert len(controller.transcript) == 5

    def test_repeated_feedback_updates_same_row(self, make_controller):
        """Test a second feedback request updates the stored conversation."""
        controller, parts = make_controller(
            scoring_replies=[GOOD_FEEDBACK, GOOD_FEEDBACK.replace("88", "91")]
        )
        controller.mount()
        controller.submit_text("Hi, got a minute?")
        controller.request_feedback()
        first_id = controller.conversation_id

        controller.submit_text("Can we book thirty minutes Tuesday?")
        controller.request_feedback()

        assert controller.conversation_id == first_id
        rows = parts["store"].list_for_user("trainee-1")
        assert len(rows) == 1
        assert rows[0].score == 91
        assert len(rows[0].transcript()) == 5
