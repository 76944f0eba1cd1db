"""
NewsREEL Prediction Evaluator
Scores contest recommendations against a time-windowed ground-truth click log
"""

__version__ = "1.0.0"

# Defaults used by the contest evaluation
EVALUATION_DEFAULTS = {
    "window_size_millis": 5 * 60 * 1000,
    "max_recommendations": 3,
}
