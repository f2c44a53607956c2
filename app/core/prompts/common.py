"""Shared prompt helpers used across prompt modules."""

from __future__ import annotations
from typing import Iterable

from ..models import Speaker, Turn

SPEAKER_LABELS = {
    Speaker.TRAINEE: "Salesperson",
    Speaker.CUSTOMER: "Customer",
}


def render_transcript(turns: Iterable[Turn], max_chars: int = 12000) -> str:
    """Render turns as 'Salesperson: ...' / 'Customer: ...' lines."""
    lines = [f"{SPEAKER_LABELS[t.speaker]}: {t.text.strip()}" for t in turns]
    text = "\n".join(lines)
    if len(text) <= max_chars:
        return text
    return "…" + text[-(max_chars - 1):]


def assemble_exchange(
    *, directive: str, acknowledgement: str, history: list[dict[str, str]]
) -> list[dict[str, str]]:
    return [
        {"role": "user", "content": directive},
        {"role": "assistant", "content": acknowledgement},
        *history,
    ]
