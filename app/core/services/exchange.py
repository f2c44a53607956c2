"""
Purpose: One conversation exchange with the simulated customer.
Sends the full ordered transcript plus the scenario directive to the
completion endpoint and returns the customer's next turn.

The conversation must never dead-end: any transport/remote failure is
logged and answered with the scenario's canned fallback line.

Testing: Fake LLMClient; assert message mapping, sanitising and fallbacks.
"""

from __future__ import annotations
import logging
from typing import Iterable, Optional

from ..models import LLMSettings, ScenarioId, Speaker, Turn
from ..interfaces import LLMClient, PromptFactory
from ..prompts import DefaultPromptFactory
from ..prompts.scenarios import fallback_line
from ..utils.text import to_plain_prose

logger = logging.getLogger(__name__)


class ConversationExchangeClient:
    def __init__(
        self,
        llm: LLMClient,
        settings: LLMSettings,
        prompts: Optional[PromptFactory] = None,
    ):
        self.llm = llm
        self.settings = settings
        self.prompts: PromptFactory = prompts or DefaultPromptFactory()
        self.tokens_in: int = 0
        self.tokens_out: int = 0

    def build_messages(
        self, transcript: Iterable[Turn], scenario_id
    ) -> list[dict[str, str]]:
        """Directive first, then every turn in order (customer -> assistant)."""
        directive = self.prompts.customer_directive(ScenarioId.parse(scenario_id))
        history = [t.to_message() for t in transcript]
        return self.prompts.assemble_exchange(directive=directive, history=history)

    def exchange(self, transcript: Iterable[Turn], scenario_id) -> Turn:
        turns = tuple(transcript)
        try:
            messages = self.build_messages(turns, scenario_id)
            reply, meta = self.llm.chat(messages, self.settings)
        except Exception:
            logger.exception(
                "Completion request failed for scenario %r; using fallback",
                scenario_id,
            )
            return Turn(Speaker.CUSTOMER, fallback_line(scenario_id))

        self.tokens_in += int(meta.get("tokens_in", 0) or 0)
        self.tokens_out += int(meta.get("tokens_out", 0) or 0)

        text = to_plain_prose(reply or "")
        if not text:
            logger.warning(
                "Empty completion for scenario %r after sanitising; using fallback",
                scenario_id,
            )
            return Turn(Speaker.CUSTOMER, fallback_line(scenario_id))
        return Turn(Speaker.CUSTOMER, text)
