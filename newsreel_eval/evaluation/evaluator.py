"""
Prediction log evaluation
Reads prediction records, checks every recommended item against the ground truth
and aggregates the results per domain
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Iterable, Optional, Union

import structlog

from ..config import EvaluationConfig
from ..streaming.predictions import PredictionParseError, PredictionRecord, parse_prediction_line
from ..utils.metrics import EvaluationReport, ResponseTimeStatistics, ResultCounter
from .matcher import GroundTruthMatcher

logger = structlog.get_logger()


@dataclass
class EvaluationContext:
    """Aggregate state of one evaluation run"""

    blacklist: AbstractSet[int] = field(default_factory=frozenset)
    results: ResultCounter = field(default_factory=ResultCounter)
    response_times: ResponseTimeStatistics = field(default_factory=ResponseTimeStatistics)
    prediction_lines: int = 0
    invalid_lines: int = 0

    def report(self, matcher: Optional[GroundTruthMatcher] = None) -> EvaluationReport:
        return EvaluationReport(
            results=self.results,
            response_times=self.response_times,
            invalid_lines=self.invalid_lines,
            prediction_lines=self.prediction_lines,
            matcher_stats=matcher.get_stats() if matcher is not None else {},
        )


class Evaluator:
    """Drives the ground-truth matcher over a prediction log"""

    def __init__(self, config: EvaluationConfig):
        self.config = config

    def create_matcher(self) -> GroundTruthMatcher:
        return GroundTruthMatcher(
            policy=self.config.match_policy,
            lookahead_millis=self.config.lookahead_millis,
            out_of_order=self.config.out_of_order,
            line_format=self.config.ground_truth_format(),
        )

    def run(
        self,
        prediction_path: Optional[Union[str, Path]] = None,
        ground_truth_path: Optional[Union[str, Path]] = None,
    ) -> EvaluationReport:
        """Evaluate a prediction log against a ground-truth log"""
        prediction_path = prediction_path or self.config.prediction_path
        ground_truth_path = ground_truth_path or self.config.ground_truth_path
        if not prediction_path or not ground_truth_path:
            raise ValueError("Both a prediction log and a ground-truth log are required")

        context = EvaluationContext(blacklist=self.config.blacklisted_items)

        logger.info(
            "Evaluation is running",
            prediction_path=str(prediction_path),
            ground_truth_path=str(ground_truth_path),
            window_size_millis=self.config.window_size_millis,
        )

        with structlog.contextvars.bound_contextvars(prediction_log=Path(prediction_path).name):
            with self.create_matcher().initialize(
                ground_truth_path, self.config.window_size_millis
            ) as matcher:
                with open(prediction_path, "r", encoding="utf-8") as f:
                    self.evaluate_lines(f, matcher, context)

        report = context.report(matcher)
        report.log_summary()
        return report

    def evaluate_lines(
        self, lines: Iterable[str], matcher: GroundTruthMatcher, context: EvaluationContext
    ):
        """Evaluate prediction lines; malformed lines are logged and skipped"""
        for line_number, line in enumerate(lines, start=1):
            try:
                record = parse_prediction_line(line, self.config.max_recommendations)
            except PredictionParseError as e:
                context.invalid_lines += 1
                if e.response_time is not None:
                    context.response_times.add_value(e.response_time)
                logger.warning("invalid line", line_number=line_number, error=str(e), line=line.rstrip())
                continue

            if record is None:
                continue

            self.evaluate_record(record, matcher, context)

    def evaluate_record(
        self, record: PredictionRecord, matcher: GroundTruthMatcher, context: EvaluationContext
    ):
        context.prediction_lines += 1
        context.response_times.add_value(record.response_time)

        for candidate in record.candidates():
            valid = matcher.check_prediction(candidate, context.blacklist)
            context.results.record(record.domain_id, valid)

            logger.debug(
                "checked prediction",
                timestamp=candidate.timestamp,
                user_id=candidate.user_id,
                domain_id=candidate.domain_id,
                item_id=candidate.item_id,
                valid=valid,
            )
