"""
Data model shared by the selection, encoding and layering components.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import ConfigurationError

AES_KEY_LENGTHS = (128, 192, 256)
COMPRESSION_METHODS = ("stored", "deflated")


class LayerPlan(Enum):
    """How many nested ZIP wrappers enclose the payload."""

    NONE = "none"
    SINGLE = "single"
    DOUBLE = "double"

    @classmethod
    def parse(cls, value) -> "LayerPlan":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown layer plan: {value!r} (expected none, single or double)"
            ) from None


class PasswordMode(Enum):
    """Where the archive secret comes from."""

    RANDOM = "random"
    MANUAL = "manual"
    TIMESTAMP = "timestamp"
    NONE = "none"

    @classmethod
    def parse(cls, value) -> "PasswordMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown password mode: {value!r} "
                "(expected random, manual, timestamp or none)"
            ) from None


def parse_key_length(value) -> int:
    """Accept 128/192/256 or the "aes128"/"aes192"/"aes256" spellings."""
    text = str(value).strip().lower()
    if text.startswith("aes"):
        text = text[3:]
    try:
        key_length = int(text)
    except ValueError:
        key_length = None
    if key_length not in AES_KEY_LENGTHS:
        raise ConfigurationError(
            f"Unsupported encryption method: {value!r} (expected aes128, aes192 or aes256)"
        )
    return key_length


@dataclass(frozen=True)
class FileEntry:
    """One input file and the name it gets inside the archive."""

    source_path: Path
    size: int
    archive_name: str

    @property
    def base_name(self) -> str:
        return self.archive_name.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class SelectionCriteria:
    """Include/exclude wildcard patterns plus an optional size cap in MB."""

    include_patterns: List[str] = field(default_factory=lambda: ["*"])
    exclude_patterns: List[str] = field(default_factory=list)
    max_size_mb: Optional[float] = None


@dataclass(frozen=True)
class EncryptionSpec:
    """AES key length and the (optional) secret for one archive layer."""

    key_length: int = 256
    secret: Optional[str] = None

    def __post_init__(self):
        if self.key_length not in AES_KEY_LENGTHS:
            raise ConfigurationError(f"Unsupported AES key length: {self.key_length}")

    @property
    def enabled(self) -> bool:
        return self.secret is not None


@dataclass(frozen=True)
class ArchiveResult:
    """Bytes produced for one conversion unit and what the renderer needs to know."""

    data: bytes
    total_size: int
    download_name: str
    plan: LayerPlan
    encrypted: bool = False


@dataclass
class ConversionConfig:
    """Fully resolved configuration, regardless of which front end built it."""

    input_path: str
    output_dir: str = "output"
    whole_tree: bool = False
    compress: bool = True
    include_patterns: List[str] = field(default_factory=lambda: ["*"])
    exclude_patterns: List[str] = field(default_factory=list)
    password_mode: PasswordMode = PasswordMode.RANDOM
    preset_secret: Optional[str] = None
    display_password: bool = True
    layer: LayerPlan = LayerPlan.DOUBLE
    key_length: int = 256
    compression_method: str = "deflated"
    max_size_mb: Optional[float] = None
    no_progress: bool = False
    workers: int = 1

    @property
    def criteria(self) -> SelectionCriteria:
        return SelectionCriteria(
            include_patterns=list(self.include_patterns),
            exclude_patterns=list(self.exclude_patterns),
            max_size_mb=self.max_size_mb,
        )

    def validate(self) -> None:
        """Normalize enum fields and reject combinations that must fail before any encoding work starts."""
        self.layer = LayerPlan.parse(self.layer)
        self.password_mode = PasswordMode.parse(self.password_mode)
        if self.whole_tree and self.layer is LayerPlan.NONE:
            raise ConfigurationError(
                "Layer 'none' is not supported in compressed (whole-tree) mode, "
                "choose 'single' or 'double'"
            )
        if self.key_length not in AES_KEY_LENGTHS:
            raise ConfigurationError(f"Unsupported AES key length: {self.key_length}")
        if self.compression_method not in COMPRESSION_METHODS:
            raise ConfigurationError(
                f"Unknown compression method: {self.compression_method!r} "
                "(expected stored or deflated)"
            )
        if self.max_size_mb is not None and self.max_size_mb < 0:
            raise ConfigurationError("max size must not be negative")
        if self.workers < 1:
            raise ConfigurationError("workers must be at least 1")

    def describe(self) -> dict:
        """Plain dict view used by --show-config; never includes the secret."""
        return {
            "input": self.input_path,
            "output": self.output_dir,
            "mode": "compressed" if self.whole_tree else "individual",
            "compress": self.compress,
            "include": list(self.include_patterns),
            "exclude": list(self.exclude_patterns),
            "password_mode": self.password_mode.value,
            "display_password": self.display_password,
            "layer": self.layer.value,
            "encryption_method": f"aes{self.key_length}",
            "compression_level": self.compression_method,
            "max_size": self.max_size_mb,
            "no_progress": self.no_progress,
            "workers": self.workers,
        }
