"""Shared infrastructure: configuration, time budgets and batch execution."""

from .batch import BatchOutcome, ProgressCallback, run_batch
from .deadline import Deadline

__all__ = ["BatchOutcome", "Deadline", "ProgressCallback", "run_batch"]
