"""
Evaluation Metrics
Per-domain confirmation tallies, response-time statistics and the contest report
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np
import pandas as pd
import structlog

logger = structlog.get_logger()

HISTOGRAM_BUCKETS = 500
HISTOGRAM_BUCKET_MILLIS = 10
SUMMARY_CHUNK_SIZE = 4096


@dataclass
class DomainTally:
    """Confirmed vs. unconfirmed predictions of one domain"""

    confirmed: int = 0
    unconfirmed: int = 0

    @property
    def total(self) -> int:
        return self.confirmed + self.unconfirmed

    @property
    def per_mille(self) -> int:
        """Confirmed per thousand unconfirmed predictions, as the contest reports it"""
        return calculate_per_mille(self.confirmed, self.unconfirmed)

    def record(self, valid: bool):
        if valid:
            self.confirmed += 1
        else:
            self.unconfirmed += 1

    def as_list(self) -> List[int]:
        return [self.confirmed, self.unconfirmed]


def calculate_per_mille(numerator: int, denominator: int) -> int:
    """Integer per-mille ratio; 0 when there is nothing to divide by"""
    if denominator <= 0:
        return 0
    return (1000 * numerator) // denominator


class ResultCounter:
    """Aggregates confirmation results per domain"""

    def __init__(self):
        self.domains: Dict[int, DomainTally] = defaultdict(DomainTally)

    def record(self, domain_id: int, valid: bool):
        self.domains[domain_id].record(valid)

    def overall(self) -> DomainTally:
        total = DomainTally()
        for tally in self.domains.values():
            total.confirmed += tally.confirmed
            total.unconfirmed += tally.unconfirmed
        return total

    def __len__(self) -> int:
        return len(self.domains)


class ResponseTimeStatistics:
    """Summary (mean/min/max/std/n) and histogram of response times in ms.

    Values are buffered and folded into the running moments with numpy one chunk
    at a time, so memory stays bounded on long prediction logs.
    """

    def __init__(
        self,
        buckets: int = HISTOGRAM_BUCKETS,
        bucket_millis: int = HISTOGRAM_BUCKET_MILLIS,
        chunk_size: int = SUMMARY_CHUNK_SIZE,
    ):
        self.bucket_millis = bucket_millis
        self.chunk_size = chunk_size
        self._histogram = np.zeros(buckets, dtype=np.int64)
        self._pending: List[float] = []

        self._n = 0
        self._mean = 0.0
        self._m2 = 0.0
        self._min = math.inf
        self._max = -math.inf

    def add_value(self, response_time: float):
        self._pending.append(response_time)
        if len(self._pending) >= self.chunk_size:
            self._flush()

    def _flush(self):
        if not self._pending:
            return

        chunk = np.asarray(self._pending, dtype=np.float64)
        self._pending = []

        # Chan et al. pairwise combination of (n, mean, M2)
        n_b = len(chunk)
        mean_b = chunk.mean()
        m2_b = np.square(chunk - mean_b).sum()

        n = self._n + n_b
        delta = mean_b - self._mean
        self._mean += delta * n_b / n
        self._m2 += m2_b + delta * delta * self._n * n_b / n
        self._n = n

        self._min = min(self._min, float(chunk.min()))
        self._max = max(self._max, float(chunk.max()))

        buckets = np.clip(chunk // self.bucket_millis, 0, len(self._histogram) - 1).astype(np.int64)
        self._histogram += np.bincount(buckets, minlength=len(self._histogram))

    @property
    def n(self) -> int:
        return self._n + len(self._pending)

    @property
    def histogram(self) -> np.ndarray:
        self._flush()
        return self._histogram

    @property
    def mean(self) -> float:
        self._flush()
        return float(self._mean) if self._n > 0 else math.nan

    @property
    def min(self) -> float:
        self._flush()
        return self._min if self._n > 0 else math.nan

    @property
    def max(self) -> float:
        self._flush()
        return self._max if self._n > 0 else math.nan

    @property
    def std(self) -> float:
        """Sample standard deviation; 0.0 for a single value"""
        self._flush()
        if self._n == 0:
            return math.nan
        if self._n == 1:
            return 0.0
        return float(np.sqrt(self._m2 / (self._n - 1)))

    def summary(self) -> Dict[str, Any]:
        return {
            "mean": self.mean,
            "min": self.min,
            "max": self.max,
            "std": self.std,
            "n": self.n,
        }

    def histogram_frame(self, skip_empty: bool = True) -> pd.DataFrame:
        """Histogram as a DataFrame with the lower bound of each bucket in ms"""
        histogram = self.histogram
        frame = pd.DataFrame(
            {
                "response_time_ms": np.arange(len(histogram)) * self.bucket_millis,
                "count": histogram,
            }
        )
        if skip_empty:
            frame = frame[frame["count"] > 0].reset_index(drop=True)
        return frame


@dataclass
class EvaluationReport:
    """Final results of one evaluation run"""

    results: ResultCounter
    response_times: ResponseTimeStatistics
    invalid_lines: int = 0
    prediction_lines: int = 0
    matcher_stats: Dict[str, Any] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        """Per-domain results plus an 'all' row"""
        rows = []
        for domain_id in sorted(self.results.domains):
            tally = self.results.domains[domain_id]
            rows.append(self._row(str(domain_id), tally))
        rows.append(self._row("all", self.results.overall()))

        return pd.DataFrame(
            rows, columns=["domain", "confirmed", "unconfirmed", "total", "per_mille"]
        ).set_index("domain")

    @staticmethod
    def _row(label: str, tally: DomainTally) -> Dict[str, Any]:
        return {
            "domain": label,
            "confirmed": tally.confirmed,
            "unconfirmed": tally.unconfirmed,
            "total": tally.total,
            "per_mille": tally.per_mille,
        }

    def format_report(self, include_histogram: bool = False, delimiter: str = "\t") -> str:
        """Render the tab-separated contest report"""
        lines = ["", "Evaluation results", "=================="]

        for domain_id in sorted(self.results.domains):
            tally = self.results.domains[domain_id]
            lines.append(self._format_tally(str(domain_id), tally, delimiter))
        lines.append(self._format_tally("all", self.results.overall(), delimiter))

        summary = self.response_times.summary()
        lines.append(
            delimiter.join(
                [
                    "mean/min/max/stdDev/n",
                    f"{summary['mean']}",
                    f"{summary['min']}",
                    f"{summary['max']}",
                    f"{summary['std']}",
                    f"{summary['n']}",
                ]
            )
        )

        if include_histogram:
            lines.append("==Histogram==")
            for _, row in self.response_times.histogram_frame().iterrows():
                lines.append(f"{row['response_time_ms']}{delimiter}{row['count']}")

        return "\n".join(lines)

    @staticmethod
    def _format_tally(label: str, tally: DomainTally, delimiter: str) -> str:
        counts = f"[{tally.confirmed}, {tally.unconfirmed}]"
        return delimiter.join([label, counts, f"{tally.per_mille:,} o/oo"])

    def log_summary(self):
        overall = self.results.overall()
        logger.info(
            "Evaluation completed",
            domains=len(self.results),
            confirmed=overall.confirmed,
            unconfirmed=overall.unconfirmed,
            per_mille=overall.per_mille,
            prediction_lines=self.prediction_lines,
            invalid_lines=self.invalid_lines,
        )
