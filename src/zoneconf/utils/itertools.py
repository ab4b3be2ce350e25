"""Batching helpers for zone sweeps."""

from itertools import islice
from typing import Iterable, Iterator, List, TypeVar

T = TypeVar("T")

def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Yield successive lists of at most `size` items; the last may be shorter."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    it = iter(items)
    while True:
        batch = list(islice(it, size))
        if not batch:
            return
        yield batch
