"""
per-build progress accounting.

one tracker per build, handed to every stage. `total` is an estimate in
request groups and is revised as real counts become known, so percent can
move backwards after a revision. completed only ever grows.
"""

import logging
import math
from typing import Optional

from .models import BuildProgress, ProgressCallback
from .resilience import safe_execute

logger = logging.getLogger("refgraph.progress")


def batch_count(n_items: int, group_size: int) -> int:
    """number of requests needed for n_items at group_size ids each."""
    if n_items <= 0:
        return 0
    return math.ceil(n_items / max(1, group_size))


class ProgressTracker:
    """completed/total counters for one build."""

    def __init__(self, on_progress: Optional[ProgressCallback] = None, total: int = 1):
        self.on_progress = on_progress
        self.completed = 0
        self.total = total
        self.last_message = ""

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return max(0, min(100, round(self.completed / self.total * 100)))

    def snapshot(self, message: str) -> BuildProgress:
        return BuildProgress(
            message=message,
            percent=self.percent,
            completed=self.completed,
            total=self.total
        )

    def report(self, message: str):
        """send the current state to the callback, if any."""
        self.last_message = message
        logger.debug(f"[progress] {self.completed}/{self.total} {message}")
        if self.on_progress is None:
            return
        progress = self.snapshot(message)
        safe_execute(
            lambda: self.on_progress(progress),
            error_msg="[progress] progress callback failed"
        )

    def advance(self, steps: int = 1, message: str = "Fetching papers..."):
        self.completed += steps
        self.report(message)

    def batch_complete(self):
        """callback for providers: one request group finished. keeps the stage message."""
        self.advance(1, self.last_message or "Fetching papers...")

    def set_completed(self, completed: int):
        self.completed = max(self.completed, completed)

    def reestimate(self, *remaining: int):
        """total = what is done plus the remaining request estimates."""
        self.total = self.completed + sum(remaining)

    def finish(self, message: str):
        self.total = max(self.total, self.completed)
        self.completed = self.total
        self.report(message)
