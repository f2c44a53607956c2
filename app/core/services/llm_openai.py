"""
Purpose: OpenAI chat-completions client shared by the customer role-play and
the feedback scorer. One place for auth, retry policy, request options and
usage normalization.

The client is constructed explicitly and passed into the services that need
it (exchange, scoring, speech, transcription); nothing holds a module-level
handle.

Retries cover throttling and connectivity only. A live conversation is
waiting on the reply, so the default backoff is short; the exchange client
answers with a fallback line once retries are exhausted.

Testing: Inject a fake SDK client; assert request options, usage mapping
and which errors are retried.
"""

from __future__ import annotations
import logging
import time
from typing import Optional, Sequence

from openai import OpenAI
from openai import APIConnectionError, APITimeoutError, RateLimitError

from ..models import LLMSettings

logger = logging.getLogger(__name__)

RETRYABLE = (RateLimitError, APITimeoutError, APIConnectionError)
CONVERSATION_BACKOFF = (0.5, 1.0)


class OpenAILLMClient:
    def __init__(
        self,
        api_key: str,
        *,
        client: Optional[OpenAI] = None,
        backoff: Sequence[float] = CONVERSATION_BACKOFF,
    ):
        if not api_key:
            raise RuntimeError("Missing OPENAI_API_KEY")
        self.api_key = api_key
        self.backoff = tuple(backoff)
        if client is None:
            try:
                client = OpenAI(api_key=api_key)
            except Exception as e:
                raise RuntimeError(f"Failed to initialize OpenAI client: {e}") from e
        # speech and transcription reach the SDK through this attribute
        self.client = client

    def _call(self, fn):
        for attempt, delay in enumerate(self.backoff, start=1):
            try:
                return fn()
            except RETRYABLE as e:
                logger.warning(
                    "OpenAI attempt %d failed (%s); retrying in %.1fs", attempt, e, delay
                )
                time.sleep(delay)
        return fn()

    @staticmethod
    def _request(payload: list[dict[str, str]], settings: LLMSettings) -> dict:
        request = {
            "model": settings.model,
            "messages": payload,
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "max_tokens": settings.max_tokens,
        }
        if settings.frequency_penalty:
            request["frequency_penalty"] = settings.frequency_penalty
        if settings.presence_penalty:
            request["presence_penalty"] = settings.presence_penalty
        if settings.response_format:
            request["response_format"] = settings.response_format
        return request

    def chat(
        self,
        messages: list[dict[str, str]],
        settings: LLMSettings,
        system: Optional[str] = None,
    ) -> tuple[str, dict]:
        """Return (reply text, meta) where meta carries model and token usage."""
        payload = [{"role": "system", "content": system}] if system else []
        payload.extend(messages)
        request = self._request(payload, settings)

        completion = self._call(lambda: self.client.chat.completions.create(**request))

        text = completion.choices[0].message.content or ""
        usage = getattr(completion, "usage", None)
        meta = {
            "model": getattr(completion, "model", settings.model),
            "tokens_in": getattr(usage, "prompt_tokens", 0) or 0,
            "tokens_out": getattr(usage, "completion_tokens", 0) or 0,
            "raw": completion,
        }
        logger.debug(
            "chat model=%s in=%s out=%s", meta["model"], meta["tokens_in"], meta["tokens_out"]
        )
        return text, meta
