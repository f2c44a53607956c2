"""Feedback/coaching prompts: post-session scoring."""

from __future__ import annotations
from textwrap import dedent

from core.models import ScenarioId


def build_feedback_system() -> str:
    return (
        "You are an expert sales trainer and rubric grader.\n"
        "Use the conversation transcript to evaluate and coach the salesperson.\n\n"
        "Rules:\n"
        "- Be constructive, specific, and encouraging.\n"
        "- Never invent facts absent from the transcript.\n"
        "- When asked to return JSON, return EXACTLY one JSON object and nothing else."
    )


def feedback_instruction(*, scenario_id: ScenarioId, transcript: str) -> str:
    label = ScenarioId.parse(scenario_id).label
    return dedent(
        f"""\
        Please provide detailed feedback on this {label} conversation.

        Conversation transcript:
        {{transcript}}

        Please analyze this conversation and provide:

        1. OVERALL SCORE (0-100): Rate the overall performance
        2. STRENGTHS: What the salesperson did well (2-3 points)
        3. AREAS FOR IMPROVEMENT: Specific areas to work on (2-3 points)
        4. KEY RECOMMENDATIONS: Actionable advice for next time (2-3 points)
        5. SCENARIO-SPECIFIC FEEDBACK: Feedback specific to {label} best practices

        Output ONLY this JSON object (no code fences, no commentary):
        {{{{
          "score": <int 0..100>,
          "strengths": ["strength1", "strength2", "strength3"],
          "improvements": ["improvement1", "improvement2", "improvement3"],
          "recommendations": ["recommendation1", "recommendation2", "recommendation3"],
          "scenarioFeedback": "detailed scenario-specific feedback paragraph"
        }}}}
        """
    ).format(transcript=transcript or "(not available)")
