"""
Purpose: speech-to-text integration and browser audio output for Streamlit.

- transcribe_wav_bytes(): Whisper transcription of one recorded clip.
- WhisperSpeechEngine: SpeechEngine capability fed with recorded clips.
- StreamlitAudioPlayer: AudioPlayer that hands MP3 bytes to the page.
- autoplay_html(): hidden auto-playing <audio> element.
"""

from __future__ import annotations
import base64
import io
import logging
import threading
import uuid
from typing import Callable, Optional, Sequence

from ..interfaces import LLMClient
from ..models import RecognitionSegment

logger = logging.getLogger(__name__)


def transcribe_wav_bytes(
    wav_bytes: bytes, llm: LLMClient, *, model: str = "whisper-1"
) -> str:
    """
    Transcribe WAV audio bytes to text using the given LLM client (e.g., OpenAI)."""
    client = getattr(llm, "client", llm)
    with io.BytesIO(wav_bytes) as buf:
        buf.name = "input.wav"
        resp = client.audio.transcriptions.create(model=model, file=buf)
    return (resp.text or "").strip()


class WhisperSpeechEngine:
    """
    Speech capture backed by recorded clips. Each clip fed while capturing is
    transcribed and delivered as one final result; abort() drops any clip
    whose transcription finishes afterwards.
    """

    def __init__(self, llm: Optional[LLMClient], *, model: str = "whisper-1"):
        self.llm = llm
        self.model = model
        self.supported = llm is not None
        self.on_result: Optional[Callable[[Sequence[RecognitionSegment]], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None
        self._lock = threading.Lock()
        self._active = False
        self._capture_id = 0

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        if not self.supported:
            raise RuntimeError("Speech capture is not available")
        with self._lock:
            self._capture_id += 1
            self._active = True

    def abort(self) -> None:
        with self._lock:
            was_active = self._active
            self._active = False
            self._capture_id += 1
        if was_active and self.on_end is not None:
            self.on_end()

    def feed_audio(self, wav_bytes: bytes) -> None:
        """Transcribe a recorded clip and deliver it if capture is still live."""
        with self._lock:
            if not self._active or not wav_bytes:
                return
            capture_id = self._capture_id

        try:
            text = transcribe_wav_bytes(wav_bytes, self.llm, model=self.model)
        except Exception as e:
            logger.exception("Transcription failed")
            with self._lock:
                if capture_id != self._capture_id:
                    return
                self._active = False
            if self.on_error is not None:
                self.on_error(f"network: {e}")
            return

        with self._lock:
            if capture_id != self._capture_id or not self._active:
                logger.debug("Dropping transcription that finished after abort")
                return
        if self.on_result is not None:
            self.on_result([RecognitionSegment(text=text, is_final=True)])


class StreamlitAudioPlayer:
    """
    Holds at most one pending clip. render() emits it as an auto-playing
    element; from then on the browser owns playback, so the clip counts as
    ended. stop() releases a clip that has not been rendered yet.
    """

    def __init__(self) -> None:
        self._audio: Optional[bytes] = None
        self._on_ended: Optional[Callable[[], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None

    @property
    def pending(self) -> bool:
        return self._audio is not None

    def play(
        self,
        audio: bytes,
        *,
        on_ended: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None:
        self.stop()
        self._audio = audio
        self._on_ended = on_ended
        self._on_error = on_error

    def stop(self) -> None:
        self._audio = None
        self._on_ended = None
        self._on_error = None

    def render(self) -> str:
        if self._audio is None:
            return ""
        audio, on_ended, on_error = self._audio, self._on_ended, self._on_error
        self.stop()
        try:
            html = autoplay_html(audio)
        except Exception as e:
            if on_error is not None:
                on_error(str(e))
            return ""
        if on_ended is not None:
            on_ended()
        return html


def autoplay_html(mp3_bytes: bytes) -> str:
    """Return an HTML snippet that auto-plays MP3 bytes (hidden)."""
    if not mp3_bytes:
        return ""
    b64 = base64.b64encode(mp3_bytes).decode("ascii")
    el_id = f"tts_{uuid.uuid4().hex}"
    return f"""
    <audio id="{el_id}" autoplay playsinline preload="auto" style="display:none">
      <source src="data:audio/mpeg;base64,{b64}" type="audio/mpeg">
    </audio>
    <script>
      (function() {{
        const a = document.getElementById("{el_id}");
        if (a) {{
          a.play().catch(() => {{
            // Autoplay blocked; the mic button acts as the user gesture later
          }});
        }}
      }})();
    </script>
    """
