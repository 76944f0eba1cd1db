"""
Logging setup for evaluation runs
structlog on top of stdlib logging; records go to stderr so the report on stdout stays clean
"""

import logging
import sys
from typing import Any, Dict, List, Optional, TextIO

import structlog

# Raw log lines are echoed into warnings about malformed input; keep them readable
MAX_LOGGED_LINE_LENGTH = 200
LINE_FIELDS = ("line",)


def shorten_log_lines(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Cut raw input lines attached to a log event down to MAX_LOGGED_LINE_LENGTH"""
    for key in LINE_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > MAX_LOGGED_LINE_LENGTH:
            omitted = len(value) - MAX_LOGGED_LINE_LENGTH
            event_dict[key] = f"{value[:MAX_LOGGED_LINE_LENGTH]}... ({omitted} more chars)"
    return event_dict


def build_processors() -> List[Any]:
    # prediction_log is bound per run by the evaluator and merged in here
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        shorten_log_lines,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(level: str = "INFO", json_mode: bool = False, stream: Optional[TextIO] = None) -> None:
    """Configure structlog for an evaluation run.

    Args:
        level: Log level name; unknown names fall back to INFO.
        json_mode: One JSON object per record instead of the console layout.
        stream: Destination of the records, stderr by default.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*build_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)
