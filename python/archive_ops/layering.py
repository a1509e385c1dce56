"""
Layered archive construction.

A payload (raw bytes of one file, or a list of FileEntry objects) is wrapped
in zero, one or two ZIP layers. With two layers the same secret protects the
inner and the outer archive, so one password unlocks the whole nesting.
"""

from typing import Optional, Sequence, Union

from colored_logger import get_colored_logger
from .archive_encoder import ZipArchiveEncoder
from .errors import ConfigurationError
from .models import ArchiveResult, EncryptionSpec, FileEntry, LayerPlan
from .path_utils import download_name, outer_member_name

logger = get_colored_logger(__name__)

Payload = Union[bytes, Sequence[FileEntry]]


class LayeringOrchestrator:
    """Composes ZipArchiveEncoder calls into none/single/double layer archives."""

    def __init__(self, encoder: Optional[ZipArchiveEncoder] = None):
        self.encoder = encoder or ZipArchiveEncoder()

    def _build_inner(
        self,
        payload: Payload,
        encryption: Optional[EncryptionSpec],
        member_name: str,
    ) -> bytes:
        """Encode bytes as the single member ``member_name``, or every entry of a tree."""
        if isinstance(payload, (bytes, bytearray)):
            return self.encoder.encode_one(member_name, bytes(payload), encryption)
        return self.encoder.encode(list(payload), encryption)

    def build_layered_archive(
        self,
        payload: Payload,
        plan: LayerPlan,
        root_name: str,
        encryption: Optional[EncryptionSpec] = None,
        payload_is_archive: bool = False,
    ) -> ArchiveResult:
        """
        Wrap ``payload`` according to ``plan``.

        Args:
            payload: Raw bytes of a single file, or the entries of a tree
            plan: none, single or double
            root_name: File or directory name the artifact is named after
            encryption: Key length and secret applied to every layer
            payload_is_archive: The bytes payload is already a ZIP archive
                (a single layer then names it ``root_name.zip`` and a double
                layer uses it as the inner archive as-is)

        Returns:
            ArchiveResult with the final bytes and the download name

        Raises:
            ConfigurationError: plan ``none`` with a list of entries
            ArchiveEncodingError: propagated unchanged from the encoder
        """
        plan = LayerPlan.parse(plan)
        is_bytes = isinstance(payload, (bytes, bytearray))
        total_size = len(payload) if is_bytes else sum(e.size for e in payload)
        encrypted = encryption is not None and encryption.enabled

        if plan is LayerPlan.NONE:
            if not is_bytes:
                raise ConfigurationError(
                    "Layer 'none' cannot be used for a whole directory tree"
                )
            data = bytes(payload)
            encrypted = False
            logger.info("Using raw data for %s (%d bytes)", root_name, len(data))

        elif plan is LayerPlan.SINGLE:
            member_name = f"{root_name}.zip" if payload_is_archive else root_name
            data = self._build_inner(payload, encryption, member_name)
            logger.info(
                "Built single-layer %s ZIP for %s: %d bytes",
                "encrypted" if encrypted else "unencrypted",
                root_name,
                len(data),
            )

        else:
            if is_bytes and payload_is_archive:
                inner = bytes(payload)
            else:
                inner = self._build_inner(payload, encryption, root_name)
            data = self.encoder.encode_one(
                outer_member_name(root_name), inner, encryption
            )
            logger.info(
                "Built double-layer %s ZIP for %s: inner %d bytes, outer %d bytes",
                "encrypted" if encrypted else "unencrypted",
                root_name,
                len(inner),
                len(data),
            )

        return ArchiveResult(
            data=data,
            total_size=total_size,
            download_name=download_name(root_name, plan),
            plan=plan,
            encrypted=encrypted,
        )


def build_layered_archive(
    payload: Payload,
    plan: LayerPlan,
    root_name: str,
    encryption: Optional[EncryptionSpec] = None,
    compression: str = "deflated",
) -> ArchiveResult:
    """Convenience wrapper using a fresh encoder with the given compression."""
    orchestrator = LayeringOrchestrator(ZipArchiveEncoder(compression=compression))
    return orchestrator.build_layered_archive(payload, plan, root_name, encryption)
