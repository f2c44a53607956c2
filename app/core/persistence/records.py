from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

from core.models import FeedbackReport, Transcript


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ConversationRecord(SQLModel, table=True):
    __tablename__ = "conversations"

    id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    title: str
    scenario_type: str
    messages: str = Field(default="[]")  # JSON list of {role, content}
    score: Optional[int] = Field(default=None)
    feedback: Optional[str] = Field(default=None)  # JSON FeedbackReport
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def transcript(self) -> Transcript:
        return Transcript.from_json(self.messages)

    def feedback_report(self) -> Optional[FeedbackReport]:
        if not self.feedback:
            return None
        return FeedbackReport.from_dict(json.loads(self.feedback))
