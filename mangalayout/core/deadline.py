"""Processing-time budget shared by the long running analysis loops."""
from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class Deadline:
    """Tracks a millisecond budget measured with :func:`time.perf_counter`.

    ``budget_ms`` of ``None`` or a non-positive value disables the budget.
    Once :meth:`expired` returns ``True`` the ``exhausted`` flag stays set so
    callers can report a partial result.
    """

    budget_ms: float | None = None
    started: float = field(default_factory=time.perf_counter)
    exhausted: bool = False

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000.0

    def expired(self) -> bool:
        if self.exhausted:
            return True
        if self.budget_ms is None or self.budget_ms <= 0:
            return False
        if self.elapsed_ms > self.budget_ms:
            self.exhausted = True
        return self.exhausted
