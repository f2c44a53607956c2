"""
Purpose: text-to-speech integration. The simulated customer speaks its turns.

- tts_bytes(): one synthesis request against OpenAI's speech endpoint.
- OpenAITTSBackend: SynthesisBackend bound to a client, model and voice.
- SpeechSynthesizer: single-flight playback on top of a backend + AudioPlayer.
"""

from __future__ import annotations
import logging
import os
import tempfile
import threading
from typing import Callable, Optional

from ..interfaces import AudioPlayer, LLMClient, SynthesisBackend

logger = logging.getLogger(__name__)


def tts_bytes(
    text: str,
    llm: LLMClient,
    *,
    voice: str = "alloy",
    model: str = "gpt-4o-mini-tts",
    max_chars: int = 1200,
) -> bytes:
    """
    Return raw MP3 bytes. Tries streaming path; falls back to non-streaming.
    """
    safe = (text or "").strip()
    if not safe:
        return b""
    if len(safe) > max_chars:
        safe = safe[: max_chars - 1].rstrip() + "…"

    client = getattr(llm, "client", llm)

    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".mp3") as tmp:
            tmp_path = tmp.name
        try:
            with client.audio.speech.with_streaming_response.create(
                model=model, voice=voice, input=safe
            ) as resp:
                resp.stream_to_file(tmp_path)
            with open(tmp_path, "rb") as f:
                return f.read()
        finally:
            try:
                os.remove(tmp_path)
            except OSError:
                logger.debug("Could not remove temp audio %s", tmp_path)
    except AttributeError:
        pass

    resp = client.audio.speech.create(model=model, voice=voice, input=safe)
    if hasattr(resp, "read"):
        return resp.read()
    if hasattr(resp, "content"):
        return resp.content
    return b""


class OpenAITTSBackend:
    def __init__(self, llm: LLMClient, *, voice: str = "alloy", model: str = "gpt-4o-mini-tts"):
        self.llm = llm
        self.voice = voice
        self.model = model

    def synthesize(self, text: str) -> bytes:
        return tts_bytes(text, self.llm, voice=self.voice, model=self.model)


class SpeechSynthesizer:
    """
    At most one utterance audible at a time. A speak() issued while a
    synthesis request is still in flight is ignored; stop() at any point
    cancels the pending request's playback and releases the player.
    """

    def __init__(
        self,
        backend: SynthesisBackend,
        player: AudioPlayer,
        on_finished: Optional[Callable[[], None]] = None,
    ):
        self.backend = backend
        self.player = player
        self.on_finished = on_finished
        self._lock = threading.RLock()
        self._generation = 0
        self._in_flight = False
        self._speaking = False
        self.error: Optional[str] = None
        self.chars_spoken: int = 0

    @property
    def speaking(self) -> bool:
        return self._speaking

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def speak(self, text: str) -> None:
        safe = (text or "").strip()
        if not safe:
            return
        with self._lock:
            if self._in_flight:
                logger.debug("Synthesis already in flight; ignoring speak()")
                return
            self._release_player()
            self._generation += 1
            generation = self._generation
            self._in_flight = True
            self._speaking = True
            self.error = None

        try:
            audio = self.backend.synthesize(safe)
        except Exception as e:
            logger.exception("Speech synthesis failed")
            self._fail(generation, f"Failed to generate speech: {e}")
            return
        finally:
            with self._lock:
                if generation == self._generation:
                    self._in_flight = False

        if not audio:
            self._fail(generation, "Failed to generate speech: empty audio")
            return

        with self._lock:
            if generation != self._generation or not self._speaking:
                logger.debug("Discarding synthesized audio; playback was stopped")
                return
            self.chars_spoken += len(safe)

        try:
            self.player.play(
                audio,
                on_ended=lambda: self._finish(generation),
                on_error=lambda msg: self._fail(generation, f"Failed to play audio: {msg}"),
            )
        except Exception as e:
            logger.exception("Audio playback failed to start")
            self._fail(generation, f"Failed to play audio: {e}")

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            self._in_flight = False
            self._speaking = False
            self._release_player()

    def _release_player(self) -> None:
        try:
            self.player.stop()
        except Exception as e:
            logger.warning("Audio player stop raised: %s", e)

    def _finish(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self._speaking:
                return
            self._speaking = False
            self._release_player()
        self._notify_finished()

    def _fail(self, generation: int, message: str) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._in_flight = False
            was_speaking = self._speaking
            self._speaking = False
            self.error = message
            self._release_player()
        logger.warning(message)
        if was_speaking:
            self._notify_finished()

    def _notify_finished(self) -> None:
        if self.on_finished is not None:
            self.on_finished()
