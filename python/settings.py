import json
import os
from typing import Any, Dict, List, Optional

import yaml

from archive_ops.errors import ConfigurationError
from archive_ops.models import (
    ConversionConfig,
    LayerPlan,
    PasswordMode,
    parse_key_length,
)
from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)

PASSWORD_ENV_VAR = "FILE_TO_HTML_PASSWORD"
MODES = ("individual", "compressed")


def _load_env_file(env_path: str) -> None:
    """
    Simple .env file parser that doesn't require external dependencies.
    Loads key=value pairs from .env file into os.environ.
    """
    if not os.path.isfile(env_path):
        return

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()

                # Skip empty lines and comments
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if (value.startswith('"') and value.endswith('"')) or (
                    value.startswith("'") and value.endswith("'")
                ):
                    value = value[1:-1]

                # Existing environment variables win over the .env file
                if key and key not in os.environ:
                    os.environ[key] = value

        logger.debug(".env file loaded from %s", env_path)

    except OSError as e:
        logger.warning("Failed to load .env file: %s", e)


def load_env_files(paths=(".env", "../.env")) -> None:
    """Load the first .env file found in ``paths``."""
    for env_path in paths:
        if os.path.isfile(env_path):
            _load_env_file(env_path)
            break


def _as_list(value: Any) -> Optional[List[str]]:
    """Settings files may hold patterns as a list or as a comma-separated string."""
    if value is None:
        return None
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item) for item in value]


class Settings:
    """
    Defaults for a conversion, loaded from an optional settings file.

    ``.json`` files are read with the json module, ``.yaml``/``.yml`` files
    with PyYAML. Every key is optional; missing keys fall back to the built-in
    defaults. The preset secret for manual password mode is read from the
    FILE_TO_HTML_PASSWORD environment variable (a .env file works too).
    """

    def __init__(self, settings_file: Optional[str] = None) -> None:
        self.settings_file = settings_file
        self.raw: Dict[str, Any] = {}

        if settings_file:
            if not os.path.isfile(settings_file):
                raise ConfigurationError(
                    f"Settings file not found at '{settings_file}'"
                )
            self.raw = self._load_file(settings_file)

        self.input_path: Optional[str] = self.raw.get("input")
        self.output_dir: str = self.raw.get("output", "output")
        self.mode: str = self.raw.get("mode", "individual")
        self.compress: bool = self.raw.get("compress", True)
        self.include_patterns: List[str] = _as_list(self.raw.get("include")) or ["*"]
        self.exclude_patterns: List[str] = _as_list(self.raw.get("exclude")) or []
        self.password_mode: str = self.raw.get("password_mode", "random")
        # None means "show it only when the password was generated"
        self.display_password: Optional[bool] = self.raw.get("display_password")
        self.compression_level: str = self.raw.get("compression_level", "deflated")
        self.layer: str = self.raw.get("layer", "double")
        self.encryption_method: str = self.raw.get("encryption_method", "aes256")
        self.max_size: Optional[float] = self.raw.get("max_size")
        self.no_progress: bool = self.raw.get("no_progress", False)
        self.workers: int = self.raw.get("workers", 1)
        self.log_level: str = self.raw.get("log_level", "info")

        self.preset_secret: Optional[str] = os.environ.get(PASSWORD_ENV_VAR) or None

        if settings_file:
            logger.info("Settings loaded from '%s'.", settings_file)

    def _load_file(self, path: str) -> Dict[str, Any]:
        """
        Load a JSON or YAML mapping from ``path``.

        :raises ConfigurationError: if the file cannot be read or parsed, or
            does not hold a mapping.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.lower().endswith((".yaml", ".yml")):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError, OSError) as e:
            logger.error("Error loading settings file '%s': %s", path, e)
            raise ConfigurationError(f"Cannot load settings file '{path}': {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file '{path}' must contain a mapping at the top level"
            )
        return data


def _pick(cli_value, settings_value):
    return settings_value if cli_value is None else cli_value


def _as_bool(name: str, value) -> bool:
    """Settings files must hold real booleans; "false" as a string is rejected."""
    if not isinstance(value, bool):
        raise ConfigurationError(f"Setting '{name}' must be true or false, got {value!r}")
    return value


def _as_number(name: str, value, kind):
    if isinstance(value, bool):
        raise ConfigurationError(f"Setting '{name}' must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Setting '{name}' must be a number, got {value!r}"
        ) from None


def build_conversion_config(settings: Settings, args) -> ConversionConfig:
    """
    Merge settings and command-line arguments into one ConversionConfig.

    Command-line values win whenever they were given (not None).

    :raises ConfigurationError: on unknown enum values or a missing input path
    """
    input_path = _pick(args.input_path, settings.input_path)
    if not input_path:
        raise ConfigurationError("No input path given")

    mode = str(_pick(args.mode, settings.mode)).strip().lower()
    if mode not in MODES:
        raise ConfigurationError(
            f"Unknown mode: {mode!r} (expected individual or compressed)"
        )

    password_mode = PasswordMode.parse(_pick(args.password_mode, settings.password_mode))
    display_password = _pick(args.display_password, settings.display_password)
    if display_password is None:
        display_password = password_mode is PasswordMode.RANDOM
    display_password = _as_bool("display_password", display_password)

    max_size = _pick(args.max_size, settings.max_size)

    config = ConversionConfig(
        input_path=str(input_path),
        output_dir=str(_pick(args.output, settings.output_dir)),
        whole_tree=mode == "compressed",
        compress=_as_bool("compress", _pick(args.compress, settings.compress)),
        include_patterns=_pick(args.include, settings.include_patterns) or ["*"],
        exclude_patterns=_pick(args.exclude, settings.exclude_patterns) or [],
        password_mode=password_mode,
        preset_secret=settings.preset_secret,
        display_password=display_password,
        layer=LayerPlan.parse(_pick(args.layer, settings.layer)),
        key_length=parse_key_length(
            _pick(args.encryption_method, settings.encryption_method)
        ),
        compression_method=str(
            _pick(args.compression_level, settings.compression_level)
        ).lower(),
        max_size_mb=(
            _as_number("max_size", max_size, float) if max_size is not None else None
        ),
        no_progress=_as_bool(
            "no_progress", _pick(args.no_progress, settings.no_progress)
        ),
        workers=_as_number("workers", _pick(args.workers, settings.workers), int),
    )
    config.validate()
    return config


load_env_files()
