"""Timers for sweep and intake jobs"""
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass


@dataclass
class Elapsed:
    """Seconds spent inside a timed section; set when the section exits."""
    seconds: float = 0.0


@contextmanager
def section_timer(name: str, logger: logging.Logger, *, level: int = logging.INFO):
    """Log how long a named section took and hand the duration back to the caller"""
    elapsed = Elapsed()
    t0 = time.perf_counter()
    try:
        yield elapsed
    finally:
        elapsed.seconds = time.perf_counter() - t0
        logger.log(level, "TIMER %s took %.3f s", name, elapsed.seconds)
