"""
Utility modules for metrics, timestamps and logging
"""

from .metrics import EvaluationReport, ResponseTimeStatistics, ResultCounter
from .timestamps import parse_timestamp

__all__ = ["EvaluationReport", "ResponseTimeStatistics", "ResultCounter", "parse_timestamp"]
