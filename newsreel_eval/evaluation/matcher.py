"""
Ground-truth matcher
Decides whether a predicted (user, item, domain) was confirmed by a real click
inside the time window, using every click at most once
"""

from pathlib import Path
from typing import AbstractSet, Any, Dict, Optional, Union

import structlog

from ..events import PredictionCandidate
from ..streaming.ground_truth import GroundTruthFormat, GroundTruthSource
from .consumption import ConsumptionGuard
from .policies import DEFAULT_POLICY, MatchPolicy, get_policy
from .window import SlidingWindow

logger = structlog.get_logger()

OUT_OF_ORDER_LOOKUP = "lookup"
OUT_OF_ORDER_REJECT = "reject"
OUT_OF_ORDER_MODES = (OUT_OF_ORDER_LOOKUP, OUT_OF_ORDER_REJECT)


class GroundTruthMatcher:
    """Time-windowed, duplicate-safe matcher of predictions against the ground truth"""

    def __init__(
        self,
        policy: Union[MatchPolicy, str, None] = None,
        lookahead_millis: int = 0,
        out_of_order: str = OUT_OF_ORDER_LOOKUP,
        line_format: Optional[GroundTruthFormat] = None,
    ):
        if out_of_order not in OUT_OF_ORDER_MODES:
            raise ValueError(f"out_of_order must be one of {OUT_OF_ORDER_MODES}")

        if policy is None or isinstance(policy, str):
            policy = get_policy(policy or DEFAULT_POLICY)

        self.policy = policy
        self.lookahead_millis = lookahead_millis
        self.out_of_order = out_of_order
        self.line_format = line_format

        self.source: Optional[GroundTruthSource] = None
        self.window: Optional[SlidingWindow] = None
        self.guard: Optional[ConsumptionGuard] = None

        self.checked = 0
        self.confirmed = 0
        self.blacklisted = 0
        self.out_of_order_count = 0

    def initialize(self, source_path: Union[str, Path], window_size_millis: int) -> "GroundTruthMatcher":
        """Open the ground-truth log and set up an empty window.

        Raises GroundTruthSourceError if the log cannot be opened; no state is kept then.
        """
        if self.source is not None:
            raise RuntimeError("Matcher is already initialized")

        source = GroundTruthSource(source_path, line_format=self.line_format)
        self.attach(source, window_size_millis)

        logger.info(
            "Ground-truth matcher initialized",
            path=str(source_path),
            window_size_millis=window_size_millis,
            lookahead_millis=self.window.lookahead,
            policy=self.policy.name,
        )
        return self

    def attach(self, source, window_size_millis: int):
        """Use an already opened event source"""
        self.guard = ConsumptionGuard()
        self.window = SlidingWindow(
            source,
            window_size_millis,
            guard=self.guard,
            lookahead_millis=self.lookahead_millis,
        )
        self.source = source

    def check_prediction(self, candidate: PredictionCandidate, blacklist: AbstractSet[int]) -> bool:
        """Return True if an unconsumed click confirms the candidate.

        Eligible clicks lie in [timestamp - window_size, timestamp + lookahead]; the
        lookahead is 0 unless set, so later clicks do not count by default.
        """
        if self.window is None:
            raise RuntimeError("Matcher is not initialized")

        # Blacklisted items never count, so recommending everything cannot win
        if candidate.item_id in blacklist:
            self.blacklisted += 1
            return False

        self.checked += 1

        if self.window.cursor is not None and candidate.timestamp < self.window.cursor:
            self.out_of_order_count += 1
            logger.debug(
                "Out-of-order prediction",
                timestamp=candidate.timestamp,
                cursor=self.window.cursor,
                mode=self.out_of_order,
            )
            if self.out_of_order == OUT_OF_ORDER_REJECT:
                return False

        self.window.advance_to(candidate.timestamp)

        # Late candidates see the current window; only clicks within their own span count
        earliest = candidate.timestamp - self.window.window_size
        latest = candidate.timestamp + self.window.lookahead

        match_id = None
        for event_id, event in self.window.candidates(candidate.key):
            if not earliest <= event.timestamp <= latest:
                continue
            if self.guard.is_consumed(event_id):
                continue
            if self.policy.matches(event, candidate):
                match_id = event_id
                break

        if match_id is None:
            return False

        self.window.consume(match_id)
        self.confirmed += 1
        return True

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "checked": self.checked,
            "confirmed": self.confirmed,
            "blacklisted": self.blacklisted,
            "out_of_order": self.out_of_order_count,
            "policy": self.policy.name,
        }
        if self.window is not None:
            stats.update(self.window.get_stats())
        return stats

    def close(self):
        """Release the ground-truth source; never raises"""
        source, self.source = self.source, None
        if source is None:
            return

        try:
            source.close()
        except Exception as e:
            logger.warning(f"Error closing ground-truth source: {e}")

        logger.info("Ground-truth matcher closed", **self.get_stats())

    def __enter__(self) -> "GroundTruthMatcher":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
