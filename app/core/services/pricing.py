"""
Purpose: Rough USD cost of a practice session, shown in the sidebar.
Chat and scoring are billed per token, the customer's voice per character.
"""

from ..models import Price

CHAT_PRICES = {
    "gpt-4o-mini": Price(0.15, 0.60),
    "gpt-4o": Price(2.50, 10.00),
    "gpt-4.1-mini": Price(0.40, 1.60),
}

# USD per 1M characters of synthesized speech.
TTS_PRICES = {
    "gpt-4o-mini-tts": 12.00,
    "tts-1": 15.00,
    "tts-1-hd": 30.00,
}


def _per_million(count: int, rate: float) -> float:
    return count * rate / 1_000_000


def estimate_cost(model: str, tokens_in: int, tokens_out: int) -> float:
    price = CHAT_PRICES.get(model)
    if price is None:
        return 0.0
    return _per_million(tokens_in, price.input_per_1M) + _per_million(
        tokens_out, price.output_per_1M
    )


def estimate_tts_cost(model: str, chars: int) -> float:
    return _per_million(chars, TTS_PRICES.get(model, 0.0))


def session_cost(
    *, chat_model: str, tts_model: str, tokens_in: int, tokens_out: int, chars_spoken: int
) -> float:
    """Unknown models count as free rather than failing the sidebar."""
    return estimate_cost(chat_model, tokens_in, tokens_out) + estimate_tts_cost(
        tts_model, chars_spoken
    )
