"""
Ground-truth log reader
Streams time-ordered click events from a tab-separated log, one line at a time
"""

from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator, Optional, Union

import structlog

from ..events import UNKNOWN_USER, GroundTruthEvent
from ..utils.timestamps import parse_timestamp

logger = structlog.get_logger()


class GroundTruthSourceError(OSError):
    """Raised when the ground-truth log cannot be opened or read"""


@dataclass(frozen=True)
class GroundTruthFormat:
    """Column positions of the ground-truth log (0-based)"""

    timestamp: int = 2
    item_id: int = 4
    user_id: int = 5
    domain_id: int = 6
    delimiter: str = "\t"

    @property
    def min_columns(self) -> int:
        return max(self.timestamp, self.item_id, self.user_id, self.domain_id) + 1


class GroundTruthSource:
    """Sequential reader of ground-truth events with a one-event lookahead"""

    def __init__(
        self,
        path: Union[str, Path],
        line_format: Optional[GroundTruthFormat] = None,
        encoding: str = "utf-8",
    ):
        self.path = Path(path)
        self.line_format = line_format or GroundTruthFormat()
        self.lines_read = 0
        self.events_read = 0
        self.skipped_lines = 0
        self._pending: Optional[GroundTruthEvent] = None
        self._exhausted = False

        try:
            self._handle: Optional[IO[str]] = open(self.path, "r", encoding=encoding)
        except OSError as e:
            raise GroundTruthSourceError(
                e.errno, f"Cannot open ground-truth log: {e.strerror}", str(self.path)
            ) from e

        logger.info("Ground-truth source opened", path=str(self.path))

    @property
    def exhausted(self) -> bool:
        return self._exhausted and self._pending is None

    def peek(self) -> Optional[GroundTruthEvent]:
        """Return the next event without consuming it, or None at end of log"""
        if self._pending is None and not self._exhausted:
            self._pending = self._read_event()
        return self._pending

    def next_event(self) -> Optional[GroundTruthEvent]:
        """Consume and return the next event, or None at end of log"""
        event = self.peek()
        self._pending = None
        return event

    def __iter__(self) -> Iterator[GroundTruthEvent]:
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event

    def _read_event(self) -> Optional[GroundTruthEvent]:
        if self._handle is None:
            self._exhausted = True
            return None

        try:
            for line in self._handle:
                self.lines_read += 1
                event = self.parse_line(line)
                if event is not None:
                    self.events_read += 1
                    return event
        except (OSError, UnicodeDecodeError) as e:
            raise GroundTruthSourceError(f"Error reading ground-truth log {self.path}: {e}") from e

        self._exhausted = True
        logger.debug(
            "Ground-truth source exhausted",
            lines_read=self.lines_read,
            events_read=self.events_read,
            skipped_lines=self.skipped_lines,
        )
        return None

    def parse_line(self, line: str) -> Optional[GroundTruthEvent]:
        """Decode one log line; comments, blanks and malformed lines give None"""
        line = line.rstrip("\r\n")
        if len(line) < 2 or line.startswith("#"):
            return None

        fmt = self.line_format
        tokens = line.split(fmt.delimiter)
        if len(tokens) < fmt.min_columns:
            self._skip(line, "too few columns")
            return None

        try:
            item_id = int(tokens[fmt.item_id])
            domain_id = int(tokens[fmt.domain_id])
            timestamp = parse_timestamp(tokens[fmt.timestamp])
        except ValueError as e:
            self._skip(line, str(e))
            return None

        try:
            user_id = int(tokens[fmt.user_id])
        except ValueError:
            user_id = UNKNOWN_USER

        return GroundTruthEvent(
            user_id=user_id, item_id=item_id, domain_id=domain_id, timestamp=timestamp
        )

    def _skip(self, line: str, reason: str):
        self.skipped_lines += 1
        logger.warning(
            "Skipping malformed ground-truth line",
            line_number=self.lines_read,
            reason=reason,
            line=line,
        )

    def close(self):
        """Release the underlying file; failures are logged, never raised"""
        handle, self._handle = self._handle, None
        self._pending = None
        self._exhausted = True

        if handle is None:
            return

        try:
            handle.close()
            logger.info("Ground-truth source closed", path=str(self.path))
        except OSError as e:
            logger.warning(f"Error closing ground-truth log {self.path}: {e}")

    def __enter__(self) -> "GroundTruthSource":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
