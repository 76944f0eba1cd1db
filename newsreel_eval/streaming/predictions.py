"""
Prediction log decoding
Turns contest prediction records into candidates for the ground-truth matcher
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from ..events import UNKNOWN_USER, PredictionCandidate
from ..utils.timestamps import parse_timestamp

# Prevent invalid answers that recommend just everything
MAX_RECOMMENDATIONS = 3

# Only the item list stored under this key of recs.ints is evaluated
RECOMMENDATION_KEY = "3"

MESSAGE_ID_COLUMN = 1
TIMESTAMP_COLUMN = 2
RESPONSE_TIME_COLUMN = 3
USER_ID_COLUMN = 5
DOMAIN_ID_COLUMN = 6
PAYLOAD_COLUMN = 7


class PredictionParseError(ValueError):
    """Raised for prediction lines that cannot be decoded.

    `response_time` is set when the line got far enough for its response time to be
    read, so the driver can still account for it.
    """

    def __init__(self, message: str, response_time: Optional[int] = None):
        super().__init__(message)
        self.response_time = response_time


@dataclass
class PredictionRecord:
    """One decoded line of the prediction log"""

    message_id: int
    timestamp: int
    response_time: int
    user_id: int
    domain_id: int
    item_ids: List[int] = field(default_factory=list)

    def candidates(self) -> Iterator[PredictionCandidate]:
        for item_id in self.item_ids:
            yield PredictionCandidate(
                user_id=self.user_id,
                item_id=item_id,
                domain_id=self.domain_id,
                timestamp=self.timestamp,
            )


def is_ignorable(line: str) -> bool:
    """Comments and near-empty lines carry no prediction"""
    return len(line) < 2 or line.startswith("#")


def decode_recommendations(payload: str, limit: int = MAX_RECOMMENDATIONS) -> List[int]:
    """Extract the evaluated item ids from a {"recs": {"ints": {"3": [...]}}} payload"""
    try:
        document: Dict[str, Any] = json.loads(payload)
        item_ids = document["recs"]["ints"].get(RECOMMENDATION_KEY)
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        raise PredictionParseError(f"invalid recommendation payload: {e}") from e

    if item_ids is None:
        return []
    if not isinstance(item_ids, list):
        raise PredictionParseError(f"recommendation list is not an array: {item_ids!r}")

    try:
        return [int(item_id) for item_id in item_ids[:limit]]
    except (TypeError, ValueError) as e:
        raise PredictionParseError(f"invalid item id in recommendations: {e}") from e


def parse_prediction_line(
    line: str, max_recommendations: int = MAX_RECOMMENDATIONS
) -> Optional[PredictionRecord]:
    """Decode a tab-separated prediction line; returns None for comments and blank lines"""
    line = line.rstrip("\r\n")
    if is_ignorable(line):
        return None

    tokens = line.split("\t")
    if len(tokens) <= RESPONSE_TIME_COLUMN:
        raise PredictionParseError(f"expected {PAYLOAD_COLUMN + 1} columns, got {len(tokens)}")

    try:
        message_id = int(tokens[MESSAGE_ID_COLUMN])
        timestamp = parse_timestamp(tokens[TIMESTAMP_COLUMN])
        response_time = int(tokens[RESPONSE_TIME_COLUMN])
    except ValueError as e:
        raise PredictionParseError(str(e)) from e

    # From here on the response time is known and counts even if the rest is broken
    if len(tokens) <= PAYLOAD_COLUMN:
        raise PredictionParseError(
            f"expected {PAYLOAD_COLUMN + 1} columns, got {len(tokens)}", response_time=response_time
        )

    try:
        domain_id = int(tokens[DOMAIN_ID_COLUMN])
    except ValueError as e:
        raise PredictionParseError(str(e), response_time=response_time) from e

    try:
        user_id = int(tokens[USER_ID_COLUMN])
    except ValueError:
        user_id = UNKNOWN_USER

    try:
        item_ids = decode_recommendations(tokens[PAYLOAD_COLUMN], max_recommendations)
    except PredictionParseError as e:
        raise PredictionParseError(str(e), response_time=response_time) from e

    return PredictionRecord(
        message_id=message_id,
        timestamp=timestamp,
        response_time=response_time,
        user_id=user_id,
        domain_id=domain_id,
        item_ids=item_ids,
    )
