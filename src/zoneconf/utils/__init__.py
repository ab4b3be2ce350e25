"""Utility functions and helpers."""

from .itertools import chunked
from .timing import section_timer
from .logging import setup_logging
from .clock import utcnow, as_utc, parse_timestamp, format_timestamp

__all__ = [
    "chunked",
    "section_timer",
    "setup_logging",
    "utcnow",
    "as_utc",
    "parse_timestamp",
    "format_timestamp",
]
