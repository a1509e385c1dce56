"""
Error types raised by the archive-construction pipeline.

Selection problems that only affect a single file (size cap, bad patterns)
are logged and skipped instead of raised; the errors below are the ones that
stop a conversion unit or the whole run.
"""


class PackingError(Exception):
    """Base class for all pipeline errors."""

    pass


class ConfigurationError(PackingError, ValueError):
    """Raised when a resolved configuration is inconsistent."""

    pass


class InputNotFoundError(PackingError, FileNotFoundError):
    """Raised when the input root does not exist."""

    pass


class NoEligibleFilesError(PackingError):
    """Raised in whole-tree mode when no file passes the selection criteria."""

    pass


class PathSecurityError(PackingError, ValueError):
    """Raised when an archive member name would escape the archive root."""

    pass


class ArchiveEncodingError(PackingError, OSError):
    """Raised when reading a source file or finishing an archive fails."""

    pass


class PasswordError(PackingError):
    """Raised when a secret cannot be resolved."""

    pass


class PasswordMismatchError(PasswordError):
    """Raised when a manually entered secret and its confirmation differ."""

    pass


class SelectionError(PackingError, OSError):
    """Raised when file metadata cannot be read while selecting inputs."""

    pass
