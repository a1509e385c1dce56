"""
In-memory ZIP encoder with optional WinZip AES encryption.

The encoder writes a complete archive into a bytes buffer per call and keeps
no state between calls. Members are written in the order given.
"""

import io
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import pyzipper

from colored_logger import get_colored_logger
from .errors import ArchiveEncodingError, ConfigurationError
from .models import COMPRESSION_METHODS, EncryptionSpec, FileEntry
from .progress import NullReporter, ProgressReporter, report_progress_safely

logger = get_colored_logger(__name__)

ZIP_METHODS = {
    "stored": pyzipper.ZIP_STORED,
    "deflated": pyzipper.ZIP_DEFLATED,
}

EntryLike = Union[FileEntry, Tuple[Path, str]]


def _as_pairs(entries: Iterable[EntryLike]) -> List[Tuple[Path, str]]:
    """Normalize FileEntry objects and (path, name) tuples to tuples."""
    pairs = []
    for entry in entries:
        if isinstance(entry, FileEntry):
            pairs.append((entry.source_path, entry.archive_name))
        else:
            source_path, archive_name = entry
            pairs.append((Path(source_path), archive_name))
    return pairs


class ZipArchiveEncoder:
    """Creates ZIP archives in memory, encrypting members when a secret is set."""

    def __init__(
        self,
        compression: str = "deflated",
        compression_level: int = 6,
        reporter: Optional[ProgressReporter] = None,
    ):
        if compression not in COMPRESSION_METHODS:
            raise ConfigurationError(f"Unknown compression method: {compression!r}")
        self.compression = compression
        self.compression_level = compression_level
        self.reporter = reporter or NullReporter()

    def _create_zipfile_instance(
        self, buffer: io.BytesIO, encryption: Optional[EncryptionSpec]
    ) -> pyzipper.AESZipFile:
        """Create the writer for one archive, configured for the given layer."""
        kwargs = {}
        if self.compression == "deflated":
            kwargs["compresslevel"] = self.compression_level

        zipf = pyzipper.AESZipFile(
            buffer,
            "w",
            compression=ZIP_METHODS[self.compression],
            allowZip64=True,
            **kwargs,
        )
        if encryption is not None and encryption.enabled:
            zipf.setpassword(encryption.secret.encode("utf-8"))
            zipf.setencryption(pyzipper.WZ_AES, nbits=encryption.key_length)
        return zipf

    def _read_source(self, source_path: Path) -> bytes:
        try:
            return source_path.read_bytes()
        except OSError as e:
            raise ArchiveEncodingError(f"Cannot read {source_path}: {e}") from e

    def encode(
        self,
        entries: Sequence[EntryLike],
        encryption: Optional[EncryptionSpec] = None,
    ) -> bytes:
        """
        Write every entry into a new archive and return its bytes.

        Args:
            entries: FileEntry objects or (source path, name in archive) pairs
            encryption: Key length and secret; None or no secret writes plain members

        Raises:
            ArchiveEncodingError: if a source cannot be read or the archive
                cannot be finished. No partial archive is returned.
        """
        pairs = _as_pairs(entries)
        buffer = io.BytesIO()
        total_size = 0

        try:
            with self._create_zipfile_instance(buffer, encryption) as zipf:
                for index, (source_path, archive_name) in enumerate(pairs, 1):
                    data = self._read_source(source_path)
                    zipf.writestr(archive_name, data)
                    total_size += len(data)
                    report_progress_safely(
                        self.reporter, index, total_size, "Compressing files"
                    )
        except ArchiveEncodingError:
            raise
        except (OSError, RuntimeError, pyzipper.BadZipFile, pyzipper.LargeZipFile) as e:
            raise ArchiveEncodingError(f"Failed to write archive: {e}") from e

        archive = buffer.getvalue()
        logger.debug(
            "Encoded %d member(s), %d input bytes -> %d archive bytes%s",
            len(pairs),
            total_size,
            len(archive),
            " (encrypted)" if encryption is not None and encryption.enabled else "",
        )
        return archive

    def encode_one(
        self,
        name: str,
        data: bytes,
        encryption: Optional[EncryptionSpec] = None,
    ) -> bytes:
        """Wrap a single in-memory buffer as the only member of a new archive."""
        buffer = io.BytesIO()
        try:
            with self._create_zipfile_instance(buffer, encryption) as zipf:
                zipf.writestr(name, data)
        except (OSError, RuntimeError, pyzipper.BadZipFile, pyzipper.LargeZipFile) as e:
            raise ArchiveEncodingError(f"Failed to write archive member {name}: {e}") from e

        archive = buffer.getvalue()
        logger.debug(
            "Wrapped %s: %d bytes -> %d archive bytes", name, len(data), len(archive)
        )
        return archive
