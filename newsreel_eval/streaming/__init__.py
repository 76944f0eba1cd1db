"""
Line-oriented readers for the contest logs
Ground-truth click events and prediction records
"""

from .ground_truth import GroundTruthFormat, GroundTruthSource, GroundTruthSourceError
from .predictions import PredictionParseError, PredictionRecord, parse_prediction_line

__all__ = [
    "GroundTruthFormat",
    "GroundTruthSource",
    "GroundTruthSourceError",
    "PredictionParseError",
    "PredictionRecord",
    "parse_prediction_line",
]
