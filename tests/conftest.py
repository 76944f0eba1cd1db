"""
PyTest configuration and fixtures for testing
"""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np
import pytest

from newsreel_eval.events import GroundTruthEvent


# Register test markers
def pytest_configure(config):
    """Register custom test markers"""
    config.addinivalue_line("markers", "unit: Mark test as unit test")
    config.addinivalue_line("markers", "integration: Mark test as integration test")
    config.addinivalue_line("markers", "slow: Mark test as slow running")


class ListEventSource:
    """In-memory stand-in for GroundTruthSource"""

    def __init__(self, events: Iterable[GroundTruthEvent]):
        self._events = list(events)
        self._position = 0
        self.closed = False

    def peek(self) -> Optional[GroundTruthEvent]:
        if self._position >= len(self._events):
            return None
        return self._events[self._position]

    def next_event(self) -> Optional[GroundTruthEvent]:
        event = self.peek()
        if event is not None:
            self._position += 1
        return event

    @property
    def remaining(self) -> int:
        return len(self._events) - self._position

    def close(self):
        self.closed = True


def ground_truth_line(user_id, item_id, domain_id, timestamp, message_id=0) -> str:
    return "\t".join(
        [
            "event_notification",
            str(message_id),
            str(timestamp),
            "0",
            str(item_id),
            str(user_id),
            str(domain_id),
        ]
    )


def prediction_line(timestamp, user_id, domain_id, item_ids, response_time=20, message_id=1) -> str:
    payload = json.dumps({"recs": {"ints": {"3": item_ids}}})
    return "\t".join(
        [
            "recommendation_response",
            str(message_id),
            str(timestamp),
            str(response_time),
            "0",
            str(user_id),
            str(domain_id),
            payload,
        ]
    )


@pytest.fixture
def temp_directory():
    """Create temporary directory for testing"""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def event_source():
    """Factory for in-memory ground-truth sources"""
    return ListEventSource


@pytest.fixture
def make_ground_truth_line():
    return ground_truth_line


@pytest.fixture
def make_prediction_line():
    return prediction_line


@pytest.fixture
def write_lines(temp_directory):
    """Write lines to a file in the temporary directory and return its path"""

    def _write(name: str, lines: List[str]) -> Path:
        path = temp_directory / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def ground_truth_file(write_lines):
    """Write GroundTruthEvents as a tab-separated ground-truth log"""

    def _write(events: Iterable[GroundTruthEvent], name: str = "ground_truth.log") -> Path:
        lines = [
            ground_truth_line(e.user_id, e.item_id, e.domain_id, e.timestamp, message_id=i)
            for i, e in enumerate(events)
        ]
        return write_lines(name, lines)

    return _write


@pytest.fixture
def sample_event():
    """The ground-truth click used by the window scenarios"""
    return GroundTruthEvent(user_id=1, item_id=5, domain_id=9, timestamp=1000)


@pytest.fixture
def random_events():
    """Time-ordered random click stream"""
    np.random.seed(42)
    n_events = 2000

    timestamps = np.sort(np.random.randint(0, 100_000, n_events))
    return [
        GroundTruthEvent(
            user_id=int(np.random.randint(1, 20)),
            item_id=int(np.random.randint(1, 30)),
            domain_id=int(np.random.randint(1, 4)),
            timestamp=int(ts),
        )
        for ts in timestamps
    ]
