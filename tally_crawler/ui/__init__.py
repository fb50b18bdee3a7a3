"""User interaction helpers."""

from .progress import ProgressActivity, ProgressReporter

__all__ = ["ProgressActivity", "ProgressReporter"]
