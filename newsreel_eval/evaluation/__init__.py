"""
Time-windowed ground-truth matching of contest predictions
"""

from .consumption import ConsumptionGuard
from .matcher import GroundTruthMatcher
from .policies import MatchPolicy, get_policy
from .window import SlidingWindow

__all__ = ["ConsumptionGuard", "GroundTruthMatcher", "MatchPolicy", "SlidingWindow", "get_policy"]
