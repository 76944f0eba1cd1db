"""
Sliding window over the ground-truth log

Keeps only the events whose timestamp lies in [cursor - window_size, cursor + lookahead].
Events live in an arena keyed by a sequential event id; a per-(domain, item)
index answers lookups and a timestamp-ordered deque drives oldest-first eviction.
"""

from collections import deque
from typing import Deque, Dict, Iterator, Optional, Tuple

import structlog

from ..events import GroundTruthEvent
from .consumption import ConsumptionGuard

logger = structlog.get_logger()

MatchKey = Tuple[int, int]


class SlidingWindow:
    """Bounded-memory window of live ground-truth events"""

    def __init__(
        self,
        source,
        window_size_millis: int,
        guard: Optional[ConsumptionGuard] = None,
        lookahead_millis: int = 0,
    ):
        if window_size_millis < 0:
            raise ValueError("window_size_millis must be non-negative")
        if lookahead_millis < 0:
            raise ValueError("lookahead_millis must be non-negative")

        self.source = source
        self.window_size = window_size_millis
        self.lookahead = lookahead_millis
        self.guard = guard if guard is not None else ConsumptionGuard()

        self.cursor: Optional[int] = None
        self._events: Dict[int, GroundTruthEvent] = {}
        self._index: Dict[MatchKey, Dict[int, GroundTruthEvent]] = {}
        self._order: Deque[Tuple[int, int]] = deque()
        self._next_id = 0

        self.loaded_count = 0
        self.evicted_count = 0
        self.discarded_count = 0

    @property
    def lower_bound(self) -> Optional[int]:
        """Oldest timestamp still eligible to confirm a prediction"""
        if self.cursor is None:
            return None
        return self.cursor - self.window_size

    @property
    def min_timestamp(self) -> Optional[int]:
        if not self._order:
            return None
        return self._order[0][0]

    def advance_to(self, timestamp: int):
        """Move the cursor forward to `timestamp`, loading new and evicting stale events.

        The cursor never moves back: an earlier timestamp leaves the window untouched.
        """
        if self.cursor is not None and timestamp <= self.cursor:
            return

        self.cursor = timestamp
        self._load()
        self._evict()

    def _load(self):
        upper = self.cursor + self.lookahead
        lower = self.lower_bound

        while True:
            event = self.source.peek()
            if event is None or event.timestamp > upper:
                break

            self.source.next_event()
            if event.timestamp < lower:
                # Already expired relative to the cursor; never enters the window
                self.discarded_count += 1
                continue

            self._insert(event)

    def _insert(self, event: GroundTruthEvent) -> int:
        event_id = self._next_id
        self._next_id += 1

        self._events[event_id] = event
        self._index.setdefault(event.key, {})[event_id] = event
        self._order.append((event.timestamp, event_id))
        self.loaded_count += 1
        return event_id

    def _evict(self):
        lower = self.lower_bound
        evicted = 0

        while self._order and self._order[0][0] < lower:
            _, event_id = self._order.popleft()
            event = self._events.pop(event_id)

            self._unindex(event_id, event)
            self.guard.forget(event_id)
            evicted += 1

        if evicted:
            self.evicted_count += evicted
            logger.debug("Evicted ground-truth events", evicted=evicted, cursor=self.cursor, live=len(self))

    def _unindex(self, event_id: int, event: GroundTruthEvent):
        # Consumed events have already left their bucket
        bucket = self._index.get(event.key)
        if bucket is None:
            return
        bucket.pop(event_id, None)
        if not bucket:
            del self._index[event.key]

    def consume(self, event_id: int):
        """Mark a live event consumed and drop it from the lookup index.

        The event keeps its place in the eviction order, so the guard forgets the
        id once the event leaves the window.
        """
        event = self._events[event_id]
        self.guard.mark_consumed(event_id)
        self._unindex(event_id, event)

    def candidates(self, key: MatchKey) -> Iterator[Tuple[int, GroundTruthEvent]]:
        """Live, unconsumed (event_id, event) pairs for a (domain_id, item_id) key, oldest first.

        Do not call consume() while iterating.
        """
        bucket = self._index.get(key)
        if not bucket:
            return iter(())
        return iter(bucket.items())

    def events(self) -> Iterator[GroundTruthEvent]:
        for _, event_id in self._order:
            yield self._events[event_id]

    def __contains__(self, event_id: int) -> bool:
        return event_id in self._events

    def __len__(self) -> int:
        return len(self._events)

    def get_stats(self) -> Dict[str, Optional[int]]:
        return {
            "cursor": self.cursor,
            "live_events": len(self),
            "indexed_keys": len(self._index),
            "indexed_events": sum(len(bucket) for bucket in self._index.values()),
            "loaded_events": self.loaded_count,
            "evicted_events": self.evicted_count,
            "discarded_events": self.discarded_count,
            "consumed_live_events": len(self.guard),
        }
