"""
Purpose: Score a finished role-play and produce coaching feedback.
Powers the feedback view and the stored session history.

score_session(transcript, scenario) -> (FeedbackReport, meta)
- Unreachable/erroring endpoint: raises FeedbackError.
- Malformed/unparsable reply: the fixed DEFAULT_FEEDBACK is substituted.

Testing: Fake LLMClient returning good JSON, prose, or raising.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable

from ..models import (
    DEFAULT_FEEDBACK,
    FeedbackError,
    FeedbackReport,
    LLMSettings,
    ScenarioId,
    Turn,
)
from ..interfaces import LLMClient, PromptFactory
from ..prompts.common import render_transcript
from ..utils.llm_json import extract_object

logger = logging.getLogger(__name__)


def default_feedback() -> FeedbackReport:
    return copy.deepcopy(DEFAULT_FEEDBACK)


def _to_str_list(x: Any) -> list[str]:
    """Convert None, str, or list[str] to list[str].
    Discard empty/whitespace-only strings.
    """
    if x is None:
        return []
    if isinstance(x, list):
        out = []
        for item in x:
            if isinstance(item, str):
                item = item.strip()
                if item:
                    out.append(item)
        return out
    if isinstance(x, str):
        s = x.strip()
        return [s] if s else []
    return []


def _clamp_score(value: Any) -> int | None:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return None
    return max(0, min(100, score))


def parse_feedback(text: str) -> FeedbackReport:
    """Build a FeedbackReport from raw LLM text, or the default on bad input."""
    obj = extract_object(text or "")
    if not obj:
        logger.info("No JSON object in scoring reply; using default feedback")
        return default_feedback()

    score = _clamp_score(obj.get("score"))
    if score is None:
        logger.info("Scoring reply has no usable score; using default feedback")
        return default_feedback()

    commentary = obj.get("scenarioFeedback") or obj.get("scenario_feedback") or ""
    return FeedbackReport(
        score=score,
        strengths=_to_str_list(obj.get("strengths")),
        improvements=_to_str_list(obj.get("improvements")),
        recommendations=_to_str_list(obj.get("recommendations")),
        scenario_feedback=commentary.strip() if isinstance(commentary, str) else "",
    )


def score_session(
    *,
    llm: LLMClient,
    prompts: PromptFactory,
    settings: LLMSettings,
    transcript: Iterable[Turn],
    scenario_id: ScenarioId,
) -> tuple[FeedbackReport, dict]:
    """Return (FeedbackReport, meta) for the whole conversation."""
    system_prompt = prompts.build_feedback_system()
    user_prompt = prompts.feedback_instruction(
        scenario_id=ScenarioId.parse(scenario_id),
        transcript=render_transcript(transcript),
    )
    try:
        text, meta = llm.chat(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            settings,
        )
    except Exception as e:
        logger.exception("Scoring request failed")
        raise FeedbackError(f"Failed to generate feedback: {e}") from e

    logger.info("Scoring reply received, length: %d", len(text or ""))
    return parse_feedback(text), meta
