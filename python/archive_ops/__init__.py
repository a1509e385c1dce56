from .errors import (
    PackingError,
    ConfigurationError,
    InputNotFoundError,
    NoEligibleFilesError,
    PathSecurityError,
    ArchiveEncodingError,
    PasswordError,
    PasswordMismatchError,
    SelectionError,
)
from .models import (
    LayerPlan,
    PasswordMode,
    FileEntry,
    SelectionCriteria,
    EncryptionSpec,
    ArchiveResult,
    ConversionConfig,
    parse_key_length,
)

# Selection components
from .patterns import PatternSet, wildcard_to_regex, clear_pattern_cache
from .file_selector import FileSelector, FileStats, SelectionResult
from .path_utils import archive_name_for, download_name, root_display_name

# Archive construction components
from .progress import ProgressReporter, LoggingReporter, NullReporter
from .archive_encoder import ZipArchiveEncoder
from .layering import LayeringOrchestrator, build_layered_archive
from .password_policy import resolve_secret, generate_random_secret, timestamp_secret

# Pipeline driving both conversion modes
from .conversion import ConversionPipeline, ConversionSummary, convert

__all__ = [
    # Errors
    "PackingError",
    "ConfigurationError",
    "InputNotFoundError",
    "NoEligibleFilesError",
    "PathSecurityError",
    "ArchiveEncodingError",
    "PasswordError",
    "PasswordMismatchError",
    "SelectionError",
    # Data model
    "LayerPlan",
    "PasswordMode",
    "FileEntry",
    "SelectionCriteria",
    "EncryptionSpec",
    "ArchiveResult",
    "ConversionConfig",
    "parse_key_length",
    # Selection
    "PatternSet",
    "wildcard_to_regex",
    "clear_pattern_cache",
    "FileSelector",
    "FileStats",
    "SelectionResult",
    "archive_name_for",
    "download_name",
    "root_display_name",
    # Archive construction
    "ProgressReporter",
    "LoggingReporter",
    "NullReporter",
    "ZipArchiveEncoder",
    "LayeringOrchestrator",
    "build_layered_archive",
    "resolve_secret",
    "generate_random_secret",
    "timestamp_secret",
    # Pipeline
    "ConversionPipeline",
    "ConversionSummary",
    "convert",
]
