"""Facade that exposes the DefaultPromptFactory API."""

from __future__ import annotations
from core.models import ScenarioId
from . import conversation as _conversation
from . import feedback as _feedback
from .common import assemble_exchange as _assemble_exchange


class DefaultPromptFactory:
    # ROLE-PLAY
    def customer_directive(self, scenario_id: ScenarioId) -> str:
        return _conversation.build_customer_directive(scenario_id)

    def directive_acknowledgement(self) -> str:
        return _conversation.directive_acknowledgement()

    def assemble_exchange(
        self, *, directive: str, history: list[dict[str, str]]
    ) -> list[dict[str, str]]:
        return _assemble_exchange(
            directive=directive,
            acknowledgement=self.directive_acknowledgement(),
            history=history,
        )

    # FEEDBACK / SCORING
    def build_feedback_system(self) -> str:
        return _feedback.build_feedback_system()

    def feedback_instruction(
        self, *, scenario_id: ScenarioId, transcript: str
    ) -> str:
        return _feedback.feedback_instruction(
            scenario_id=scenario_id, transcript=transcript
        )
