"""
Abstractions for pluggable services. Inversion of control—core depends
on interfaces, not concrete services. Enables fakes/mocks and future swaps.
Protocols define what services or components can do,
without saying how they do it.

Common protocols:
- LLMClient.chat(messages, settings) -> (reply, meta)
- SpeechEngine: start/abort + result/error/end callbacks (speech capture)
- SynthesisBackend.synthesize(text) -> audio bytes
- AudioPlayer.play(audio, on_ended, on_error) / stop()
- ConversationStore: save/load/list of finished sessions
- TeardownNotifier(session_token): best-effort session teardown signal

Testing: Use simple fake implementations to test the controller without network calls.
"""

from __future__ import annotations
from typing import Callable, Optional, Protocol, Sequence
from .models import (
    LLMSettings,
    RecognitionSegment,
    Transcript,
    FeedbackReport,
    ScenarioId,
)


class LLMClient(Protocol):
    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]: ...


class SpeechEngine(Protocol):
    """Live speech-to-text capability supplied by the hosting environment."""

    supported: bool
    on_result: Optional[Callable[[Sequence[RecognitionSegment]], None]]
    on_error: Optional[Callable[[str], None]]
    on_end: Optional[Callable[[], None]]

    def start(self) -> None: ...

    def abort(self) -> None: ...


class SynthesisBackend(Protocol):
    def synthesize(self, text: str) -> bytes: ...


class AudioPlayer(Protocol):
    def play(
        self,
        audio: bytes,
        *,
        on_ended: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None: ...

    def stop(self) -> None: ...


class PromptFactory(Protocol):
    def customer_directive(self, scenario_id: ScenarioId) -> str: ...

    def directive_acknowledgement(self) -> str: ...

    def assemble_exchange(
        self, *, directive: str, history: list[dict[str, str]]
    ) -> list[dict[str, str]]: ...

    def build_feedback_system(self) -> str: ...

    def feedback_instruction(
        self, *, scenario_id: ScenarioId, transcript: str
    ) -> str: ...


class ConversationStore(Protocol):
    def save(
        self,
        *,
        conversation_id: Optional[str],
        user_id: str,
        scenario_id: ScenarioId,
        transcript: Transcript,
        feedback: Optional[FeedbackReport],
    ) -> str: ...

    def load(self, conversation_id: str, user_id: str): ...

    def list_for_user(self, user_id: str, limit: int = 50) -> list: ...

    def delete_for_user(self, user_id: str) -> int: ...


class TeardownNotifier(Protocol):
    def __call__(self, session_token: str) -> object: ...


class SecurityGuard(Protocol):
    def validate_user_input(self, text: str) -> None: ...

    def sanitize_for_prompt(self, text: str) -> str: ...

    def redact_pii(self, text: str) -> tuple[str, list[str]]: ...
