"""Role-play prompts: the simulated customer's behavioral directive."""

from __future__ import annotations
from textwrap import dedent

from core.models import ScenarioId
from .scenarios import get_scenario

OUTPUT_RULES = dedent(
    """\
    Output rules:
    - Stay in character as the customer for the whole conversation.
    - Reply with ONE short conversational turn (under 50 words).
    - Plain spoken prose only: no markdown, no headings, no bullet points,
      no stage directions in brackets or parentheses.
    - Never mention that you are an AI or that this is a training exercise."""
)


def build_customer_directive(scenario_id: ScenarioId) -> str:
    scenario = get_scenario(scenario_id)
    return f"{scenario.directive}\n\n{OUTPUT_RULES}"


def directive_acknowledgement() -> str:
    return "I understand. I'll roleplay as the customer according to these guidelines."
