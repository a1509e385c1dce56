"""
Progress and warning reporting for the archive pipeline.

Reporters are side collaborators: the selector, encoder and pipeline call
them, but nothing they do can change a result or fail a run.
"""

import threading
from typing import Optional

from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)


class ProgressReporter:
    """Interface for progress reporting. The base class ignores everything."""

    def set_total(self, total: int) -> None:
        """Number of units the following progress updates count towards."""
        pass

    def on_progress(self, count: int, total_size: Optional[int], label: str) -> None:
        pass

    def on_warning(self, message: str) -> None:
        pass


class NullReporter(ProgressReporter):
    """Reporter used when the caller does not supply one."""

    pass


class LoggingReporter(ProgressReporter):
    """Thread-safe reporter that turns progress into throttled log lines."""

    def __init__(self, total: Optional[int] = None, quiet: bool = False):
        self._lock = threading.Lock()
        self.total = total
        self.quiet = quiet

    def set_total(self, total: int) -> None:
        with self._lock:
            self.total = total

    def should_report_progress(self, count: int) -> bool:
        """Report roughly every 5% of the work, and always the last item."""
        if not self.total:
            return count == 1 or count % 5000 == 0
        return count % max(1, self.total // 20) == 0 or count >= self.total

    def on_progress(self, count: int, total_size: Optional[int], label: str) -> None:
        if self.quiet or not self.should_report_progress(count):
            return
        with self._lock:
            if total_size is None:
                logger.progress("%s: %d file(s)", label, count)
            elif self.total:
                logger.progress(
                    "%s: %d/%d file(s), %.2f MB",
                    label,
                    count,
                    self.total,
                    total_size / (1024 * 1024),
                )
            else:
                logger.progress(
                    "%s: %d file(s), %.2f MB", label, count, total_size / (1024 * 1024)
                )

    def on_warning(self, message: str) -> None:
        logger.warning("%s", message)


def report_progress_safely(
    reporter: Optional[ProgressReporter],
    count: int,
    total_size: Optional[int],
    label: str,
) -> None:
    """Forward a progress update, swallowing anything the reporter raises."""
    if reporter is None:
        return
    try:
        reporter.on_progress(count, total_size, label)
    except Exception as e:
        logger.debug("Progress reporter failed: %s", e)


def report_total_safely(reporter: Optional[ProgressReporter], total: int) -> None:
    """Forward the unit count, swallowing anything the reporter raises."""
    if reporter is None:
        return
    try:
        reporter.set_total(total)
    except Exception as e:
        logger.debug("Progress reporter failed: %s", e)


def report_warning_safely(reporter: Optional[ProgressReporter], message: str) -> None:
    """Forward a warning, swallowing anything the reporter raises."""
    if reporter is None:
        return
    try:
        reporter.on_warning(message)
    except Exception as e:
        logger.debug("Warning reporter failed: %s", e)
