"""
Purpose: Guardrails for trainee turns before they enter the transcript.
Transcribed or typed speech is bounded in size, stripped of control
characters, and scrubbed of contact and payment details before any of it
is sent to a third-party model or stored.
"""

import re

from ..models import ValidationError

MAX_TURN_CHARS = 4000

_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_BLANK_RUN = re.compile(r"[ \t]*\n[ \t\n]*")

# SSNs and card numbers are replaced before phones. A phone needs a leading
# "+" or a separated 3-3-4 shape so year and price ranges are left alone.
PII_PATTERNS = (
    ("EMAIL", re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.I)),
    ("SSN", re.compile(r"\b\d{3}-\d{2}-\d{4}\b")),
    ("CARD", re.compile(r"\b(?:\d[ -]*?){13,19}\b")),
    ("PHONE", re.compile(
        r"\+\d[\d\s().-]{7,}\d"
        r"|(?<!\d)(?:\(\d{3}\)\s?|\d{3}[\s.-])\d{3}[\s.-]\d{4}(?!\d)"
    )),
)


class DefaultSecurity:
    def validate_user_input(self, text: str) -> None:
        if not (text or "").strip():
            raise ValidationError("Please say something before sending.")
        if len(text) > MAX_TURN_CHARS:
            raise ValidationError("That turn is too long. Try saying it in shorter pieces.")

    def sanitize_for_prompt(self, text: str) -> str:
        """Drop control characters and fold line breaks into single spaces."""
        cleaned = _CONTROL.sub("", text or "")
        return _BLANK_RUN.sub(" ", cleaned).strip()

    def redact_pii(self, text: str) -> tuple[str, list[str]]:
        """Replace detected PII with [LABEL] markers; return the labels found."""
        found = []
        for label, pattern in PII_PATTERNS:
            text, count = pattern.subn(f"[{label}]", text)
            if count:
                found.append(label)
        return text, found
