"""
Purpose: Application configuration from environment variables (and an optional
.env file at the project root). One place for model names, voice and storage
settings so the UI and services never read os.environ directly.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parents[2] / ".env"


@dataclass(frozen=True)
class AppConfig:
    openai_api_key: Optional[str] = None
    chat_model: str = "gpt-4o-mini"
    feedback_model: str = "gpt-4o-mini"
    tts_model: str = "gpt-4o-mini-tts"
    tts_voice: str = "alloy"
    stt_model: str = "whisper-1"
    database_url: str = "sqlite:///./data.db"
    log_level: str = "INFO"
    max_reply_tokens: int = 160
    default_user_id: str = "local-trainee"

    def validate(self) -> list[str]:
        """Return the list of missing required settings."""
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.database_url:
            missing.append("DATABASE_URL")
        return missing


def load_config(env_file: Optional[Path] = ENV_PATH) -> AppConfig:
    """Build AppConfig from the environment; values in .env never override it."""
    if env_file is not None and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return AppConfig(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        chat_model=os.getenv("CHAT_MODEL", "gpt-4o-mini"),
        feedback_model=os.getenv("FEEDBACK_MODEL", "gpt-4o-mini"),
        tts_model=os.getenv("TTS_MODEL", "gpt-4o-mini-tts"),
        tts_voice=os.getenv("TTS_VOICE", "alloy"),
        stt_model=os.getenv("STT_MODEL", "whisper-1"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./data.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        max_reply_tokens=int(os.getenv("MAX_REPLY_TOKENS", "160")),
        default_user_id=os.getenv("TRAINEE_ID", "local-trainee"),
    )
