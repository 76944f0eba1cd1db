"""
Event types shared by the ground-truth matcher and its driver
"""

from dataclasses import dataclass
from typing import Tuple

# User id used when a prediction record carries no parseable user
UNKNOWN_USER = -1


@dataclass(frozen=True)
class GroundTruthEvent:
    """A recorded user interaction (click) read from the ground-truth log"""

    user_id: int
    item_id: int
    domain_id: int
    timestamp: int

    @property
    def key(self) -> Tuple[int, int]:
        return (self.domain_id, self.item_id)


@dataclass(frozen=True)
class PredictionCandidate:
    """One recommended item of a prediction record, checked against the ground truth"""

    user_id: int
    item_id: int
    domain_id: int
    timestamp: int

    @property
    def key(self) -> Tuple[int, int]:
        return (self.domain_id, self.item_id)

    @property
    def has_user(self) -> bool:
        return self.user_id != UNKNOWN_USER
