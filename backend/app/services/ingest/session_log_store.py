# backend/app/services/ingest/session_log_store.py
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from app.core.config import settings


class SessionLogStore:
    """
    In-memory buffer of the most recent raw sessions, for the dashboard's
    log table. Bounded: the oldest entries fall off once `max_entries` is hit.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._logs: Deque[Dict[str, Any]] = deque(
            maxlen=max_entries or settings.RECENT_LOG_LIMIT
        )

    def add(self, session: Dict[str, Any]) -> None:
        self._logs.append(session)

    def list_logs(self, limit: int = 50) -> List[Dict[str, Any]]:
        # newest first
        if limit <= 0:
            return []
        out = list(self._logs)[-limit:]
        out.reverse()
        return out

    def __len__(self) -> int:
        return len(self._logs)
