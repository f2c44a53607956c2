"""
Purpose: Server-side record of live training sessions. Receives the
best-effort teardown notification when a session ends.
"""

from __future__ import annotations
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._live: dict[str, dict] = {}

    def open(self, token: str, scenario_id: str, user_id: Optional[str] = None) -> None:
        with self._lock:
            self._live[token] = {
                "scenario": scenario_id,
                "user_id": user_id,
                "opened_at": datetime.now(timezone.utc),
            }
        logger.info("Session %s opened (%s)", token, scenario_id)

    def destroy(self, token: str) -> bool:
        """Forget a session. Unknown tokens are not an error."""
        with self._lock:
            entry = self._live.pop(token, None)
        if entry is None:
            logger.debug("Teardown for unknown session %s", token)
            return False
        logger.info("Session %s destroyed", token)
        return True

    def __call__(self, token: str) -> bool:
        return self.destroy(token)

    def is_live(self, token: str) -> bool:
        with self._lock:
            return token in self._live

    def live(self) -> int:
        with self._lock:
            return len(self._live)
