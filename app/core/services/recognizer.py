"""
Purpose: Turn recognizer. Wraps the environment's live speech-to-text
capability (an injected SpeechEngine) and surfaces one finalized text
segment per completed utterance.

Rules:
- stop() and force_stop() always use the engine's hard-abort path; results
  delivered after either call are discarded.
- Capability errors are logged and leave the recognizer not capturing; they
  never propagate to the session.
"""

from __future__ import annotations
import logging
from typing import Callable, Optional, Sequence

from ..interfaces import SpeechEngine
from ..models import RecognitionSegment

logger = logging.getLogger(__name__)


class TurnRecognizer:
    def __init__(
        self,
        engine: Optional[SpeechEngine],
        on_segment: Optional[Callable[[str], None]] = None,
    ):
        self.engine = engine
        self.on_segment = on_segment
        self._capturing = False
        self._interim = ""
        self._final_parts: list[str] = []
        if engine is not None:
            engine.on_result = self._handle_result
            engine.on_error = self._handle_error
            engine.on_end = self._handle_end

    @property
    def supported(self) -> bool:
        return self.engine is not None and bool(getattr(self.engine, "supported", False))

    @property
    def capturing(self) -> bool:
        return self._capturing

    @property
    def interim_text(self) -> str:
        return self._interim

    def start(self) -> None:
        if self._capturing:
            return
        if not self.supported:
            logger.warning("Speech capture requested but not supported here")
            return
        self._reset_buffers()
        self._capturing = True
        try:
            self.engine.start()
        except Exception as e:
            logger.warning("Speech capture failed to start: %s", e)
            self._capturing = False

    def stop(self) -> None:
        if not self._capturing:
            return
        self._capturing = False
        self._reset_buffers()
        self._abort_engine()

    def force_stop(self) -> None:
        self._capturing = False
        self._reset_buffers()
        if self.engine is not None:
            self._abort_engine()

    def _abort_engine(self) -> None:
        try:
            self.engine.abort()
        except Exception as e:
            logger.warning("Speech engine abort raised: %s", e)

    def _reset_buffers(self) -> None:
        self._interim = ""
        self._final_parts = []

    # engine callbacks

    def _handle_result(self, segments: Sequence[RecognitionSegment]) -> None:
        if not self._capturing:
            logger.debug("Discarding %d result(s) after stop", len(segments))
            return
        completed = False
        interim = []
        for seg in segments:
            if seg.is_final:
                self._final_parts.append(seg.text)
                completed = True
            else:
                interim.append(seg.text)
        self._interim = "".join(interim)
        if completed:
            self._emit()

    def _emit(self) -> None:
        text = "".join(self._final_parts).strip()
        self._reset_buffers()
        if not text:
            return
        if self.on_segment is not None:
            self.on_segment(text)

    def _handle_error(self, code: str) -> None:
        logger.warning("Speech recognition error: %s", code)
        self._capturing = False
        self._reset_buffers()

    def _handle_end(self) -> None:
        self._capturing = False
        self._interim = ""
