"""Scenario table: customer persona, objectives, opening and fallback lines."""

from __future__ import annotations
from textwrap import dedent

from core.models import CustomerProfile, Scenario, ScenarioId

GENERIC_FALLBACK = (
    "I'm sorry, could you repeat that? I didn't quite catch what you said."
)


_COLD_CALLING_DIRECTIVE = dedent(
    """\
    You are a potential customer receiving a cold call from a sales representative.
    You should act realistic and challenging but not impossible to work with.

    Key behaviors:
    - Be initially skeptical and busy
    - Ask probing questions about value proposition
    - Show interest if the salesperson demonstrates clear benefits
    - Raise common objections like budget, timing, or existing solutions
    - Gradually warm up if the salesperson handles objections well
    - Keep responses conversational and under 50 words

    Your company: Mid-size manufacturing company, you're the Operations Manager
    Current challenges: Looking to improve efficiency and reduce costs
    Personality: Professional but direct, values concrete benefits over features"""
)

_DEMO_PITCH_DIRECTIVE = dedent(
    """\
    You are a potential customer attending a product demonstration.
    You're interested but need to be convinced of the value.

    Key behaviors:
    - Ask specific questions about features and benefits
    - Compare to existing solutions you might have
    - Inquire about pricing, implementation, and support
    - Show interest in ROI and business impact
    - Be engaged but require thorough explanations
    - Keep responses conversational and under 50 words

    Your company: Growing tech startup, you're the CTO
    Current challenges: Scaling operations and improving team productivity
    Personality: Technical-minded, data-driven, wants to see proof of value"""
)

_UPSELL_DIRECTIVE = dedent(
    """\
    You are an existing satisfied customer being approached about additional
    services or upgrades.

    Key behaviors:
    - Express satisfaction with current service
    - Be open to hearing about new offerings
    - Ask about additional costs and value
    - Consider how new features would benefit your team
    - Show interest if benefits are clearly explained
    - Keep responses conversational and under 50 words

    Your company: Established consulting firm, you're the Managing Partner
    Current situation: Happy with existing service, always looking for ways to improve
    Personality: Relationship-focused, values long-term partnerships,
    cost-conscious but willing to invest in proven value"""
)


SALES_SCENARIOS: dict[ScenarioId, Scenario] = {
    ScenarioId.COLD_CALLING: Scenario(
        id=ScenarioId.COLD_CALLING,
        title="Cold Calling Practice",
        description=(
            "Practice your cold calling skills with realistic role-play scenarios."
        ),
        customer_profile=CustomerProfile(
            role="Operations Manager",
            company="Mid-size manufacturing company",
            challenges=(
                "Improving efficiency",
                "Reducing costs",
                "Streamlining operations",
            ),
            personality="Professional but direct, values concrete benefits over features",
            initial_mood="Skeptical and busy",
        ),
        objectives=(
            "Build rapport quickly",
            "Identify customer pain points",
            "Present value proposition clearly",
            "Handle objections professionally",
            "Secure next meeting or commitment",
        ),
        directive=_COLD_CALLING_DIRECTIVE,
        opening_line=(
            "Hello? This is quite unexpected. I'm actually in the middle of "
            "something important right now. What is this regarding?"
        ),
        fallback_line=(
            "I appreciate you calling, but I'm quite busy right now. "
            "Can you quickly tell me what this is about?"
        ),
    ),
    ScenarioId.DEMO_PITCH: Scenario(
        id=ScenarioId.DEMO_PITCH,
        title="Demo Pitch Training",
        description="Perfect your product demonstration and pitch delivery.",
        customer_profile=CustomerProfile(
            role="Chief Technology Officer",
            company="Growing tech startup",
            challenges=(
                "Scaling operations",
                "Improving team productivity",
                "Managing technical debt",
            ),
            personality="Technical-minded, data-driven, wants to see proof of value",
            initial_mood="Interested but needs convincing",
        ),
        objectives=(
            "Demonstrate key features effectively",
            "Connect features to business benefits",
            "Address technical concerns",
            "Discuss implementation and support",
            "Move toward purchase decision",
        ),
        directive=_DEMO_PITCH_DIRECTIVE,
        opening_line=(
            "Thank you for setting up this demo. I'm interested to see what you "
            "have to show us. Our team is always looking for solutions that can "
            "help us scale more efficiently."
        ),
        fallback_line=(
            "This looks interesting. Can you tell me more about how this would "
            "specifically help our business?"
        ),
    ),
    ScenarioId.UPSELL: Scenario(
        id=ScenarioId.UPSELL,
        title="Upselling Practice",
        description="Learn to identify and capitalize on upselling opportunities.",
        customer_profile=CustomerProfile(
            role="Managing Partner",
            company="Established consulting firm",
            challenges=(
                "Improving client satisfaction",
                "Increasing team efficiency",
                "Staying competitive",
            ),
            personality=(
                "Relationship-focused, values long-term partnerships, "
                "cost-conscious but willing to invest"
            ),
            initial_mood="Satisfied with current service, open to improvements",
        ),
        objectives=(
            "Identify expansion opportunities",
            "Present additional value clearly",
            "Address cost concerns",
            "Leverage existing relationship",
            "Secure upgrade or additional services",
        ),
        directive=_UPSELL_DIRECTIVE,
        opening_line=(
            "Hi there! Good to hear from you. We've been quite happy with the "
            "current service you're providing. What's this about?"
        ),
        fallback_line=(
            "We're happy with our current service. What additional value would "
            "this new feature provide?"
        ),
    ),
}


def get_scenario(scenario_id) -> Scenario:
    """Scenario for the id; unknown ids resolve to the default scenario."""
    return SALES_SCENARIOS[ScenarioId.parse(scenario_id)]


def is_known_scenario(scenario_id) -> bool:
    if isinstance(scenario_id, ScenarioId):
        return True
    return str(scenario_id or "").strip().lower() in {s.value for s in ScenarioId}


def fallback_line(scenario_id) -> str:
    """Canned customer reply used when the completion endpoint fails."""
    if not is_known_scenario(scenario_id):
        return GENERIC_FALLBACK
    return get_scenario(scenario_id).fallback_line


def opening_line(scenario_id) -> str:
    return get_scenario(scenario_id).opening_line
