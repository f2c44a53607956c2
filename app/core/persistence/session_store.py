"""
Purpose: Conversation history storage (in-memory for tests, SQL for the app).
Why: Reopen finished sessions, show scores over time, delete a user's data.

Methods (both stores):
- save(conversation_id, user_id, scenario_id, transcript, feedback) -> id
  Persists whether or not a row exists yet; a second save with the same id
  updates the row in place. Saving over another user's row raises
  PermissionError and writes nothing.
- load(conversation_id, user_id) -> ConversationRecord | None
- list_for_user(user_id, limit) -> newest first
- delete_for_user(user_id) -> rows removed

Testing:
In-memory: simple state tests.
SQL: sqlite in-memory engine fixture.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from core.models import FeedbackReport, ScenarioId, Transcript
from .records import ConversationRecord, utcnow

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def session_title(scenario_id: ScenarioId, day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"{ScenarioId.parse(scenario_id).label} - {day.isoformat()}"


def score_label(score: Optional[int]) -> str:
    if score is None:
        return "Not scored"
    if score >= 90:
        return "Excellent"
    if score >= 80:
        return "Good"
    if score >= 70:
        return "Fair"
    if score >= 60:
        return "Needs Work"
    return "Poor"


def summarize_history(records: Iterable[ConversationRecord]) -> dict:
    """Dashboard numbers: sessions, scored sessions, average and best score."""
    records = list(records)
    scores = [r.score for r in records if r.score is not None]
    return {
        "sessions": len(records),
        "scored": len(scores),
        "average_score": round(sum(scores) / len(scores), 1) if scores else None,
        "best_score": max(scores) if scores else None,
    }


def _row_values(
    *,
    conversation_id: str,
    user_id: str,
    scenario_id: ScenarioId,
    transcript: Transcript,
    feedback: Optional[FeedbackReport],
) -> dict:
    scenario = ScenarioId.parse(scenario_id)
    now = utcnow()
    return {
        "id": conversation_id,
        "user_id": user_id,
        "title": session_title(scenario),
        "scenario_type": scenario.value,
        "messages": transcript.to_json(),
        "score": feedback.score if feedback else None,
        "feedback": json.dumps(feedback.to_dict()) if feedback else None,
        "created_at": now,
        "updated_at": now,
    }


class InMemoryConversationStore:
    def __init__(self) -> None:
        self._rows: dict[str, ConversationRecord] = {}

    def save(
        self,
        *,
        conversation_id: Optional[str],
        user_id: str,
        scenario_id: ScenarioId,
        transcript: Transcript,
        feedback: Optional[FeedbackReport],
    ) -> str:
        conversation_id = conversation_id or uuid.uuid4().hex
        values = _row_values(
            conversation_id=conversation_id,
            user_id=user_id,
            scenario_id=scenario_id,
            transcript=transcript,
            feedback=feedback,
        )
        existing = self._rows.get(conversation_id)
        if existing is not None:
            if existing.user_id != user_id:
                raise PermissionError("Conversation belongs to another user")
            values["created_at"] = existing.created_at
            values["title"] = existing.title
        self._rows[conversation_id] = ConversationRecord(**values)
        return conversation_id

    def load(self, conversation_id: str, user_id: str) -> Optional[ConversationRecord]:
        row = self._rows.get(conversation_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    def list_for_user(self, user_id: str, limit: int = 50) -> list[ConversationRecord]:
        rows = [r for r in self._rows.values() if r.user_id == user_id]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[:limit]

    def delete_for_user(self, user_id: str) -> int:
        doomed = [k for k, r in self._rows.items() if r.user_id == user_id]
        for k in doomed:
            del self._rows[k]
        return len(doomed)


class SQLConversationStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def save(
        self,
        *,
        conversation_id: Optional[str],
        user_id: str,
        scenario_id: ScenarioId,
        transcript: Transcript,
        feedback: Optional[FeedbackReport],
    ) -> str:
        conversation_id = conversation_id or uuid.uuid4().hex
        values = _row_values(
            conversation_id=conversation_id,
            user_id=user_id,
            scenario_id=scenario_id,
            transcript=transcript,
            feedback=feedback,
        )
        insert = _UPSERT_DIALECTS.get(self.engine.dialect.name)
        if insert is None:
            self._merge(values)
            return conversation_id

        table = ConversationRecord.__table__
        stmt = insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.id],
            set_={
                "messages": stmt.excluded.messages,
                "score": stmt.excluded.score,
                "feedback": stmt.excluded.feedback,
                "updated_at": stmt.excluded.updated_at,
            },
            where=table.c.user_id == stmt.excluded.user_id,
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        if result.rowcount == 0:
            # the conflict row belongs to someone else, so the update was skipped
            raise PermissionError("Conversation belongs to another user")
        logger.info("Conversation %s saved for %s", conversation_id, user_id)
        return conversation_id

    def _merge(self, values: dict) -> None:
        # No native upsert on this dialect; not safe against concurrent writers.
        with Session(self.engine) as session:
            row = session.get(ConversationRecord, values["id"])
            if row is None:
                session.add(ConversationRecord(**values))
            elif row.user_id != values["user_id"]:
                raise PermissionError("Conversation belongs to another user")
            else:
                for key in ("messages", "score", "feedback", "updated_at"):
                    setattr(row, key, values[key])
                session.add(row)
            session.commit()

    def load(self, conversation_id: str, user_id: str) -> Optional[ConversationRecord]:
        with Session(self.engine) as session:
            stmt = select(ConversationRecord).where(
                ConversationRecord.id == conversation_id,
                ConversationRecord.user_id == user_id,
            )
            return session.exec(stmt).first()

    def list_for_user(self, user_id: str, limit: int = 50) -> list[ConversationRecord]:
        with Session(self.engine) as session:
            stmt = (
                select(ConversationRecord)
                .where(ConversationRecord.user_id == user_id)
                .order_by(col(ConversationRecord.created_at).desc())
                .limit(limit)
            )
            return list(session.exec(stmt).all())

    def delete_for_user(self, user_id: str) -> int:
        table = ConversationRecord.__table__
        with self.engine.begin() as conn:
            result = conn.execute(delete(table).where(table.c.user_id == user_id))
        logger.info("Deleted %s conversation(s) for %s", result.rowcount, user_id)
        return int(result.rowcount or 0)
