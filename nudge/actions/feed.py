"""
Intervention Feed — the default presentation collaborator.

Dispatched records are queued per session; the UI side either polls
(`GET /sessions/{id}/interventions`) or holds a WebSocket open.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List

from ..router.response_validator import InterventionRecord

FEED_SIZE = 20


class InterventionFeed:

    def __init__(self, size: int = FEED_SIZE):
        self._size = size
        self._queues: Dict[str, Deque[InterventionRecord]] = {}

    def present(self, session_id: str, record: InterventionRecord) -> None:
        self._queues.setdefault(session_id, deque(maxlen=self._size)).append(record)

    def drain(self, session_id: str) -> List[InterventionRecord]:
        queue = self._queues.get(session_id)
        if not queue:
            return []
        items = list(queue)
        queue.clear()
        return items

    def pending(self, session_id: str) -> int:
        return len(self._queues.get(session_id, ()))

    def discard(self, session_id: str) -> None:
        self._queues.pop(session_id, None)
