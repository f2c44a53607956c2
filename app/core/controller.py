"""
Purpose: The single orchestration point for a training session. Owns the
turn phase and the transcript, sequences the recognizer, the exchange client
and the synthesizer, and runs session teardown and the feedback request.
Prevents UI from knowing how prompts/LLM/voice services work.

Phases (cyclic after the first opening line):
  INITIALIZING -> SPEAKING -> IDLE -> LISTENING -> PROCESSING -> SPEAKING -> IDLE
UNSUPPORTED replaces the voice cycle when speech capture is unavailable.

Key responsibilities:
- Append turns strictly in the order they are finalized.
- Never leave the recognizer capturing outside LISTENING, nor the
  synthesizer playing outside SPEAKING.
- Fire the teardown notification at most once per session, however many
  teardown triggers race to it.

Testing: Pure unit tests with fakes for SpeechEngine, SynthesisBackend,
AudioPlayer, LLMClient and the teardown notifier.
"""

from __future__ import annotations
import atexit
import logging
import threading
import uuid
from typing import Callable, Optional

from .models import (
    FeedbackError,
    FeedbackReport,
    LLMSettings,
    ScenarioId,
    Speaker,
    Transcript,
    Turn,
    TurnPhase,
    ValidationError,
)
from .interfaces import (
    ConversationStore,
    LLMClient,
    PromptFactory,
    SecurityGuard,
    TeardownNotifier,
)
from .prompts import DefaultPromptFactory
from .prompts.scenarios import get_scenario
from .services.exchange import ConversationExchangeClient
from .services.feedback_scorer import score_session
from .services.recognizer import TurnRecognizer
from .services.security import DefaultSecurity
from .services.speech import SpeechSynthesizer

logger = logging.getLogger(__name__)

MIN_FEEDBACK_TURNS = 2
END_SESSION_MESSAGE = "Please have a conversation before ending the session."


class SessionController:
    def __init__(
        self,
        *,
        scenario_id,
        recognizer: TurnRecognizer,
        synthesizer: SpeechSynthesizer,
        exchange: ConversationExchangeClient,
        scoring_llm: LLMClient,
        scoring_settings: LLMSettings,
        teardown: Optional[TeardownNotifier] = None,
        store: Optional[ConversationStore] = None,
        user_id: str = "local-trainee",
        prompts: Optional[PromptFactory] = None,
        security: Optional[SecurityGuard] = None,
    ):
        # Raw id is kept so unknown ids still get the generic fallback line.
        self.scenario_key = scenario_id
        self.scenario = get_scenario(scenario_id)
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.exchange = exchange
        self.scoring_llm = scoring_llm
        self.scoring_settings = scoring_settings
        self.teardown = teardown
        self.store = store
        self.user_id = user_id
        self.prompts: PromptFactory = prompts or DefaultPromptFactory()
        self.security: SecurityGuard = security or DefaultSecurity()

        self.session_token: str = uuid.uuid4().hex
        self.transcript = Transcript()
        self.phase: TurnPhase = TurnPhase.INITIALIZING
        self.ended: bool = False
        self.feedback: Optional[FeedbackReport] = None
        self.conversation_id: Optional[str] = None
        self.last_error: Optional[str] = None
        self._scoring_tokens_in: int = 0
        self._scoring_tokens_out: int = 0

        self._teardown_lock = threading.Lock()
        self._teardown_started = False
        self._atexit_hook: Optional[Callable[[], None]] = None

        self.recognizer.on_segment = self._on_segment
        self.synthesizer.on_finished = self._on_speech_finished

    @property
    def scenario_id(self) -> ScenarioId:
        return self.scenario.id

    @property
    def tokens_in(self) -> int:
        return self.exchange.tokens_in + self._scoring_tokens_in

    @property
    def tokens_out(self) -> int:
        return self.exchange.tokens_out + self._scoring_tokens_out

    @property
    def supported(self) -> bool:
        return self.recognizer.supported

    def history(self) -> list[dict[str, str]]:
        """Transcript as chat messages, in order, for rendering."""
        return self.transcript.to_messages()

    def _set_phase(self, phase: TurnPhase) -> None:
        if phase != self.phase:
            logger.debug("Session %s: %s -> %s", self.session_token, self.phase.value, phase.value)
        self.phase = phase

    # lifecycle

    def mount(self) -> None:
        """View mounted: the customer opens the conversation."""
        if self.phase != TurnPhase.INITIALIZING or self.ended:
            return
        self.transcript.append(Turn(Speaker.CUSTOMER, self.scenario.opening_line))
        if not self.recognizer.supported:
            logger.warning("Speech capture unsupported; session %s is view-only", self.session_token)
            self._set_phase(TurnPhase.UNSUPPORTED)
            return
        self._speak(self.scenario.opening_line)

    def bind_lifecycle(self) -> None:
        """Run end_session() at interpreter exit unless the session ends first."""
        if self._atexit_hook is not None:
            return
        self._atexit_hook = lambda: self.end_session(reason="process exit")
        atexit.register(self._atexit_hook)

    def end_session(self, reason: str = "closed") -> bool:
        """
        Stop all voice I/O, then notify teardown. Returns True only for the
        call that performed the teardown.
        """
        with self._teardown_lock:
            if self._teardown_started:
                return False
            self._teardown_started = True

        self.recognizer.force_stop()
        self.synthesizer.stop()
        self.ended = True
        if self.phase != TurnPhase.UNSUPPORTED:
            self._set_phase(TurnPhase.IDLE)

        if self._atexit_hook is not None:
            atexit.unregister(self._atexit_hook)
            self._atexit_hook = None

        logger.info("Session %s ended (%s)", self.session_token, reason)
        if self.teardown is not None:
            try:
                self.teardown(self.session_token)
            except Exception:
                logger.exception("Teardown notification failed for %s", self.session_token)
        return True

    # voice turn cycle

    def toggle_mic(self) -> None:
        if self.ended:
            return
        if self.phase == TurnPhase.LISTENING:
            self.recognizer.stop()
            self._set_phase(TurnPhase.IDLE)
            return
        if self.phase == TurnPhase.SPEAKING:
            self.synthesizer.stop()
            self._set_phase(TurnPhase.IDLE)
        if self.phase != TurnPhase.IDLE:
            return
        self._set_phase(TurnPhase.LISTENING)
        self.recognizer.start()
        if not self.recognizer.capturing:
            self._set_phase(TurnPhase.IDLE)

    def submit_text(self, text: str) -> Optional[Turn]:
        """Typed trainee turn; same transition as a finalized voice segment."""
        if self.ended or self.phase in (
            TurnPhase.PROCESSING,
            TurnPhase.INITIALIZING,
            TurnPhase.UNSUPPORTED,
        ):
            return None
        if not (text or "").strip():
            return None
        if self.phase == TurnPhase.LISTENING:
            self.recognizer.stop()
        elif self.phase == TurnPhase.SPEAKING:
            self.synthesizer.stop()
        self._set_phase(TurnPhase.LISTENING)
        return self._take_turn(text)

    def _on_segment(self, text: str) -> None:
        if self.ended or self.phase != TurnPhase.LISTENING:
            logger.debug("Dropping recognized segment outside LISTENING")
            return
        self.recognizer.stop()
        self._take_turn(text)

    def _take_turn(self, text: str) -> Optional[Turn]:
        try:
            self.security.validate_user_input(text)
        except ValueError as e:
            logger.info("Trainee turn rejected: %s", e)
            self.last_error = str(e)
            if self.phase == TurnPhase.LISTENING:
                self._set_phase(TurnPhase.IDLE)
            return None
        clean = self.security.sanitize_for_prompt(text)
        clean, _pii = self.security.redact_pii(clean)

        self._set_phase(TurnPhase.PROCESSING)
        self.transcript.append(Turn(Speaker.TRAINEE, clean))

        reply = self.exchange.exchange(self.transcript.snapshot(), self.scenario_key)

        if self.ended or self.phase != TurnPhase.PROCESSING:
            logger.info("Discarding reply for session %s; it moved on", self.session_token)
            return None
        self.transcript.append(reply)
        self._speak(reply.text)
        return reply

    def _speak(self, text: str) -> None:
        self._set_phase(TurnPhase.SPEAKING)
        self.synthesizer.speak(text)
        # speak() reports failures synchronously through on_finished
        if not self.synthesizer.speaking and self.phase == TurnPhase.SPEAKING:
            self._set_phase(TurnPhase.IDLE)

    def _on_speech_finished(self) -> None:
        if self.phase == TurnPhase.SPEAKING:
            if self.synthesizer.error:
                self.last_error = self.synthesizer.error
            self._set_phase(TurnPhase.IDLE)

    # feedback

    def request_feedback(self) -> Optional[FeedbackReport]:
        """
        Score the conversation. Fewer than two turns raises ValidationError
        without touching anything. Voice I/O is silenced first; a scoring
        failure sets last_error and leaves the session resumable.
        """
        if len(self.transcript) < MIN_FEEDBACK_TURNS:
            raise ValidationError(END_SESSION_MESSAGE)

        self.synthesizer.stop()
        self.recognizer.stop()
        if self.phase in (TurnPhase.SPEAKING, TurnPhase.LISTENING):
            self._set_phase(TurnPhase.IDLE)

        try:
            report, meta = score_session(
                llm=self.scoring_llm,
                prompts=self.prompts,
                settings=self.scoring_settings,
                transcript=self.transcript.snapshot(),
                scenario_id=self.scenario_id,
            )
        except FeedbackError as e:
            self.last_error = str(e)
            return None

        self._scoring_tokens_in += int(meta.get("tokens_in", 0) or 0)
        self._scoring_tokens_out += int(meta.get("tokens_out", 0) or 0)
        self.feedback = report
        self.last_error = None
        self._persist()
        return report

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.conversation_id = self.store.save(
                conversation_id=self.conversation_id,
                user_id=self.user_id,
                scenario_id=self.scenario_id,
                transcript=self.transcript,
                feedback=self.feedback,
            )
        except Exception:
            logger.exception("Could not save conversation for session %s", self.session_token)
