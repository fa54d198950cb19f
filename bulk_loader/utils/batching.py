"""Helper functions for chunking iterables."""
from collections.abc import Iterable, Iterator
from typing import TypeVar

T = TypeVar("T")


def chunked(iterable: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield successive chunks of at most ``size`` items.

    An empty iterable still yields one empty chunk, so callers that turn
    chunks into batches always get at least one batch.
    """
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")

    chunk: list[T] = []
    yielded = False
    for item in iterable:
        chunk.append(item)
        if len(chunk) == size:
            yield chunk
            yielded = True
            chunk = []

    if chunk or not yielded:
        yield chunk
