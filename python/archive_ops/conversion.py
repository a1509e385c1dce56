"""
Conversion pipeline - turns an input root into one or more HTML pages.

One implementation covers both modes:
- whole-tree ("compressed"): every eligible file goes into one layered
  archive named after the input root
- per-file ("individual"): every eligible file becomes its own layered
  archive and HTML page; a failing file is logged and the batch continues

The secret is resolved once per run, so a per-file batch shares one password.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional, Tuple

import psutil

from colored_logger import get_colored_logger
from .archive_encoder import ZipArchiveEncoder
from .errors import ArchiveEncodingError, InputNotFoundError, PackingError
from .file_selector import FileSelector, SelectionResult
from .layering import LayeringOrchestrator
from .models import ConversionConfig, EncryptionSpec, FileEntry
from .password_policy import resolve_secret
from .path_utils import ensure_dir_exists, root_display_name
from .progress import (
    NullReporter,
    ProgressReporter,
    report_progress_safely,
    report_total_safely,
)

logger = get_colored_logger(__name__)

MAX_WORKERS = 8

# Rough peak memory per unit: source bytes, inner archive and outer archive
MEMORY_FACTOR_PER_UNIT = 3


def default_worker_count() -> int:
    """Physical core count, capped at MAX_WORKERS."""
    cores = psutil.cpu_count(logical=False) or psutil.cpu_count() or 1
    return max(1, min(cores, MAX_WORKERS))


def bounded_worker_count(requested: int, largest_unit_size: int) -> int:
    """
    Cap the per-file worker count so all units in flight fit in memory.

    Each unit buffers a whole file plus its archives, so the cap is the
    available memory divided by the largest unit's estimated footprint.
    """
    requested = max(1, min(requested, MAX_WORKERS))
    if requested == 1:
        return 1

    per_unit = max(1, largest_unit_size * MEMORY_FACTOR_PER_UNIT)
    available = psutil.virtual_memory().available
    by_memory = max(1, available // per_unit)
    if by_memory < requested:
        logger.notice(
            "Limiting workers from %d to %d to stay within available memory",
            requested,
            by_memory,
        )
    return int(min(requested, by_memory))


@dataclass
class ConversionSummary:
    """Outcome of one run."""

    output_dir: Path
    units_processed: int = 0
    units_failed: int = 0
    total_size: int = 0
    outputs: List[Path] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)


Renderer = Callable[..., Path]


class ConversionPipeline:
    """
    Runs selection, secret resolution, layering and rendering for one config.

    Collaborators:
    - File selection: FileSelector
    - Archive encoding: ZipArchiveEncoder via LayeringOrchestrator
    - Secret: resolve_secret
    - Output: renderer (html_renderer.render_html_file by default)
    """

    def __init__(
        self,
        config: ConversionConfig,
        reporter: Optional[ProgressReporter] = None,
        renderer: Optional[Renderer] = None,
    ):
        if renderer is None:
            from html_renderer import render_html_file

            renderer = render_html_file

        self.config = config
        self.reporter = reporter or NullReporter()
        self.renderer = renderer
        self.selector = FileSelector(
            max_workers=default_worker_count(), reporter=self.reporter
        )

    def _make_orchestrator(self, compression: str) -> LayeringOrchestrator:
        encoder = ZipArchiveEncoder(compression=compression, reporter=self.reporter)
        return LayeringOrchestrator(encoder)

    def _prepare(self) -> Path:
        """Validate the configuration and the input root before any work."""
        self.config.validate()
        root = Path(self.config.input_path)
        if not root.exists():
            logger.error("Input path does not exist: %s", self.config.input_path)
            raise InputNotFoundError(
                f"Input path '{self.config.input_path}' does not exist"
            )
        return root

    def _resolve_encryption(self) -> EncryptionSpec:
        secret = resolve_secret(self.config.password_mode, self.config.preset_secret)
        return EncryptionSpec(key_length=self.config.key_length, secret=secret)

    def _process_whole_tree(
        self,
        root: Path,
        selection: SelectionResult,
        encryption: EncryptionSpec,
        summary: ConversionSummary,
    ) -> None:
        root_name = root_display_name(root.resolve())
        logger.info(
            "Compressing %d file(s) into one archive for %s",
            len(selection.entries),
            root_name,
        )

        orchestrator = self._make_orchestrator(self.config.compression_method)
        result = orchestrator.build_layered_archive(
            selection.entries, self.config.layer, root_name, encryption
        )
        output_path = self.renderer(
            result,
            root_name,
            summary.output_dir,
            encryption.secret,
            self.config.display_password,
        )

        summary.units_processed = 1
        summary.total_size = result.total_size
        summary.outputs.append(output_path)

    def _unit_output_dir(self, entry: FileEntry) -> Path:
        """Mirror the entry's directory so equal base names do not collide."""
        parent = PurePosixPath(entry.archive_name).parent
        if str(parent) in ("", "."):
            return self.config_output_dir
        return self.config_output_dir.joinpath(*parent.parts)

    @property
    def config_output_dir(self) -> Path:
        return Path(self.config.output_dir)

    def _convert_file(self, entry: FileEntry, encryption: EncryptionSpec) -> Path:
        """Convert one file into its own layered archive and HTML page."""
        try:
            data = entry.source_path.read_bytes()
        except OSError as e:
            raise ArchiveEncodingError(f"Cannot read {entry.source_path}: {e}") from e
        logger.debug("Read %s (%d bytes)", entry.source_path, len(data))

        compression = self.config.compression_method if self.config.compress else "stored"
        orchestrator = self._make_orchestrator(compression)
        result = orchestrator.build_layered_archive(
            data, self.config.layer, entry.base_name, encryption
        )
        return self.renderer(
            result,
            entry.base_name,
            self._unit_output_dir(entry),
            encryption.secret,
            self.config.display_password,
        )

    def _record_unit(
        self,
        entry: FileEntry,
        outcome: Optional[Path],
        error: Optional[Exception],
        summary: ConversionSummary,
    ) -> None:
        if error is not None:
            summary.units_failed += 1
            summary.failures.append((str(entry.source_path), str(error)))
            logger.error("Failed to process %s: %s", entry.source_path, error)
            return

        summary.units_processed += 1
        summary.total_size += entry.size
        summary.outputs.append(outcome)
        report_progress_safely(
            self.reporter, summary.units_processed, summary.total_size, "Converting files"
        )

    def _process_per_file(
        self,
        selection: SelectionResult,
        encryption: EncryptionSpec,
        summary: ConversionSummary,
    ) -> None:
        entries = selection.entries
        largest = max(entry.size for entry in entries)
        workers = bounded_worker_count(self.config.workers, largest)
        logger.info("Processing %d file(s) with %d worker(s)", len(entries), workers)

        if workers == 1:
            for entry in entries:
                try:
                    outcome = self._convert_file(entry, encryption)
                except (PackingError, OSError) as e:
                    self._record_unit(entry, None, e, summary)
                else:
                    self._record_unit(entry, outcome, None, summary)
            return

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="Converter"
        ) as executor:
            futures = [
                (entry, executor.submit(self._convert_file, entry, encryption))
                for entry in entries
            ]
            # Collect in entry order so logs and summaries stay deterministic
            for entry, future in futures:
                try:
                    outcome = future.result()
                except (PackingError, OSError) as e:
                    self._record_unit(entry, None, e, summary)
                else:
                    self._record_unit(entry, outcome, None, summary)

    def run(self) -> ConversionSummary:
        """
        Execute the conversion.

        Returns:
            ConversionSummary describing produced pages and failed units

        Raises:
            ConfigurationError: inconsistent configuration
            InputNotFoundError: input root missing
            NoEligibleFilesError: whole-tree mode and nothing selected
            PasswordError: the secret could not be resolved
            ArchiveEncodingError: whole-tree archive could not be built
        """
        start_time = time.time()
        root = self._prepare()
        whole_tree = self.config.whole_tree

        logger.info(
            "Starting %s conversion of %s into %s",
            "compressed" if whole_tree else "individual",
            self.config.input_path,
            self.config.output_dir,
        )

        selection = self.selector.select(root, self.config.criteria, whole_tree)
        summary = ConversionSummary(output_dir=self.config_output_dir)

        if not selection.entries:
            logger.warning("No files match the selection criteria, nothing to do")
            return summary

        report_total_safely(self.reporter, len(selection.entries))
        encryption = self._resolve_encryption()
        ensure_dir_exists(summary.output_dir)

        if whole_tree:
            self._process_whole_tree(root, selection, encryption, summary)
        else:
            self._process_per_file(selection, encryption, summary)

        elapsed = time.time() - start_time
        logger.success(
            "Conversion finished: %d page(s) written, %d failed, %.2f MB in %.2f seconds",
            summary.units_processed,
            summary.units_failed,
            summary.total_size / (1024 * 1024),
            elapsed,
        )
        return summary


def convert(
    config: ConversionConfig,
    reporter: Optional[ProgressReporter] = None,
) -> ConversionSummary:
    """Convenience function running a ConversionPipeline for ``config``."""
    return ConversionPipeline(config, reporter=reporter).run()
