"""
Single-use bookkeeping for ground-truth events
"""

from typing import Set

import structlog

logger = structlog.get_logger()


class ConsumptionGuard:
    """Tracks which ground-truth events already confirmed a prediction"""

    def __init__(self):
        self._consumed: Set[int] = set()
        self.total_consumed = 0

    def mark_consumed(self, event_id: int):
        """Record that an event confirmed a prediction. An event can be consumed only once."""
        if event_id in self._consumed:
            raise ValueError(f"Ground-truth event {event_id} was already consumed")

        self._consumed.add(event_id)
        self.total_consumed += 1

    def is_consumed(self, event_id: int) -> bool:
        return event_id in self._consumed

    def forget(self, event_id: int):
        """Drop an evicted event; it can no longer be looked up"""
        self._consumed.discard(event_id)

    def clear(self):
        self._consumed.clear()

    def __contains__(self, event_id: int) -> bool:
        return event_id in self._consumed

    def __len__(self) -> int:
        return len(self._consumed)
