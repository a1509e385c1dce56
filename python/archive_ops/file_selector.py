"""
File discovery and filtering for archive operations.

This module walks an input root (a single file or a directory tree), applies
the include/exclude patterns and the optional size cap, and returns the
eligible files sorted by their name inside the archive.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from colored_logger import get_colored_logger
from .errors import InputNotFoundError, NoEligibleFilesError, SelectionError
from .models import FileEntry, SelectionCriteria
from .path_utils import archive_name_for
from .patterns import PatternSet
from .progress import (
    NullReporter,
    ProgressReporter,
    report_progress_safely,
    report_warning_safely,
)

logger = get_colored_logger(__name__)

BYTES_PER_MB = 1024 * 1024

# Below this many candidates the thread pool costs more than it saves
PARALLEL_THRESHOLD = 64

SELECTED = "selected"
FILTERED = "filtered"
OVERSIZED = "oversized"


class FileStats:
    """Container for file selection statistics."""

    def __init__(self):
        self.total_files = 0
        self.total_size = 0
        self.filtered_files = 0
        self.oversized_files = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            "total_files": self.total_files,
            "total_size": self.total_size,
            "filtered_files": self.filtered_files,
            "oversized_files": self.oversized_files,
        }

    def add_file(self, file_size: int) -> None:
        self.total_files += 1
        self.total_size += file_size

    def filter_file(self) -> None:
        self.filtered_files += 1

    def skip_oversized(self) -> None:
        self.oversized_files += 1


@dataclass
class SelectionResult:
    """Eligible entries in archive-name order plus their total size."""

    entries: List[FileEntry] = field(default_factory=list)
    total_size: int = 0
    stats: FileStats = field(default_factory=FileStats)

    def __len__(self) -> int:
        return len(self.entries)


class FileSelector:
    """Selects the files of an input root that match a SelectionCriteria."""

    def __init__(
        self, max_workers: int = 4, reporter: Optional[ProgressReporter] = None
    ):
        self.max_workers = max(1, min(max_workers, 8))
        self.reporter = reporter or NullReporter()

    def _walk_error(self, error: OSError) -> None:
        """Report a directory os.walk could not list; its files are skipped."""
        message = (
            f"Cannot read directory {error.filename}: {error.strerror or error}, skipping"
        )
        logger.warning("%s", message)
        report_warning_safely(self.reporter, message)

    def scan(self, root: Path) -> List[Path]:
        """Return every file below ``root`` (or ``root`` itself when it is a file)."""
        if root.is_file():
            return [root]

        files = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=self._walk_error):
            dirnames.sort()
            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                if file_path.is_file():
                    files.append(file_path)
        return files

    def _check_file(
        self,
        file_path: Path,
        root: Path,
        include: PatternSet,
        exclude: PatternSet,
        max_size_mb: Optional[float],
    ) -> Tuple[str, Optional[FileEntry]]:
        """Decide whether a single file is eligible. Pure apart from one stat call."""
        archive_name = archive_name_for(file_path, root)

        if not include.matches(archive_name) or exclude.matches(archive_name):
            return FILTERED, None

        try:
            file_size = file_path.stat().st_size
        except OSError as e:
            raise SelectionError(f"Cannot read metadata of {file_path}: {e}") from e

        if max_size_mb is not None and file_size / BYTES_PER_MB > max_size_mb:
            entry = FileEntry(file_path, file_size, archive_name)
            return OVERSIZED, entry

        return SELECTED, FileEntry(file_path, file_size, archive_name)

    def _check_all(
        self,
        candidates: List[Path],
        root: Path,
        include: PatternSet,
        exclude: PatternSet,
        max_size_mb: Optional[float],
    ) -> List[Tuple[str, Optional[FileEntry]]]:
        """Run the eligibility check on every candidate, in candidate order."""

        def check(file_path: Path) -> Tuple[str, Optional[FileEntry]]:
            return self._check_file(file_path, root, include, exclude, max_size_mb)

        if self.max_workers == 1 or len(candidates) < PARALLEL_THRESHOLD:
            return [check(file_path) for file_path in candidates]

        # map() yields in submission order, so the first error raised is the
        # first failing path, however the workers were scheduled
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="FileSelector"
        ) as executor:
            return list(executor.map(check, candidates))

    def select(
        self,
        root,
        criteria: Optional[SelectionCriteria] = None,
        whole_tree: bool = False,
    ) -> SelectionResult:
        """
        Select the eligible files of ``root``.

        Args:
            root: Input file or directory
            criteria: Patterns and size cap (defaults to everything)
            whole_tree: Raise NoEligibleFilesError instead of returning an
                empty result when nothing qualifies

        Returns:
            SelectionResult sorted by archive name
        """
        criteria = criteria or SelectionCriteria()
        root_path = Path(root)
        if not root_path.exists():
            raise InputNotFoundError(f"Input path '{root}' does not exist")
        root_path = root_path.resolve()

        def warn(message: str) -> None:
            report_warning_safely(self.reporter, message)

        include = PatternSet(criteria.include_patterns, warn)
        exclude = PatternSet(criteria.exclude_patterns, warn)

        candidates = self.scan(root_path)
        logger.debug("Found %d candidate file(s) under %s", len(candidates), root_path)

        checked = self._check_all(
            candidates, root_path, include, exclude, criteria.max_size_mb
        )

        result = SelectionResult()
        for status, entry in checked:
            if status == FILTERED:
                result.stats.filter_file()
            elif status == OVERSIZED:
                result.stats.skip_oversized()
                message = (
                    f"File {entry.source_path} exceeds the size limit "
                    f"({entry.size / BYTES_PER_MB:.2f} MB > {criteria.max_size_mb} MB), skipping"
                )
                logger.warning("%s", message)
                report_warning_safely(self.reporter, message)
            else:
                result.entries.append(entry)
                result.stats.add_file(entry.size)
                report_progress_safely(
                    self.reporter,
                    result.stats.total_files,
                    result.stats.total_size,
                    "Collecting files",
                )

        result.entries.sort(key=lambda entry: entry.archive_name)
        result.total_size = result.stats.total_size
        logger.debug("Selection stats: %s", result.stats.to_dict())

        logger.info(
            "Selection complete: %d file(s) (%.2f MB), %d filtered out, %d over size limit",
            result.stats.total_files,
            result.stats.total_size / BYTES_PER_MB,
            result.stats.filtered_files,
            result.stats.oversized_files,
        )

        if whole_tree and not result.entries:
            raise NoEligibleFilesError(f"No eligible files to archive under {root}")

        return result
