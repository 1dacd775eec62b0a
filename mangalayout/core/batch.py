"""Chunked fan-out used to analyse many pages with a concurrency limit."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class BatchOutcome(Generic[R]):
    """Result or exception captured for a single batch item."""

    index: int
    result: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_batch(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    concurrency: int | None = 1,
    on_progress: ProgressCallback | None = None,
) -> List[BatchOutcome[R]]:
    """Apply ``func`` to every item, ``concurrency`` items at a time.

    Items are processed in chunks of ``concurrency``.  A failing item never
    aborts the batch: its exception is stored in its :class:`BatchOutcome`.
    ``on_progress(done, total)`` is called after each chunk; errors raised by
    the callback are logged and ignored.  Outcomes keep the input order.
    """

    pending = list(items)
    total = len(pending)
    limit = max(1, int(concurrency or 1))
    outcomes: List[BatchOutcome[R]] = []
    if total == 0:
        return outcomes

    with ThreadPoolExecutor(max_workers=limit) as executor:
        for start in range(0, total, limit):
            chunk = pending[start : start + limit]
            futures = [executor.submit(func, item) for item in chunk]
            for offset, future in enumerate(futures):
                index = start + offset
                try:
                    outcomes.append(BatchOutcome(index=index, result=future.result()))
                except Exception as exc:
                    logger.warning("Batch item %d failed: %s", index, exc)
                    outcomes.append(BatchOutcome(index=index, error=exc))

            if on_progress is not None:
                try:
                    on_progress(min(start + limit, total), total)
                except Exception:
                    logger.exception("Progress callback failed")

    return outcomes
