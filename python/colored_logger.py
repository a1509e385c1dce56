import logging
import sys
from typing import Optional

# Custom logging levels
PROGRESS_LEVEL = 22
SUCCESS_LEVEL = 25
NOTICE_LEVEL = 35

logging.addLevelName(PROGRESS_LEVEL, "PROGRESS")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")
logging.addLevelName(NOTICE_LEVEL, "NOTICE")

# Level names accepted on the command line and in settings files
LOG_LEVEL_NAMES = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds color codes to log messages based on log level."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "PROGRESS": "\033[94m",  # Bright Blue
        "SUCCESS": "\033[92m",  # Bright Green
        "WARNING": "\033[33m",  # Yellow
        "NOTICE": "\033[96m",  # Bright Cyan
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str = None, datefmt: str = None, stream=None):
        super().__init__(fmt, datefmt)
        self.stream = stream or sys.stderr

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        # Only add colors if output is to a terminal
        isatty = getattr(self.stream, "isatty", None)
        if isatty and isatty():
            level_color = self.COLORS.get(record.levelname, "")
            return f"{level_color}{message}{self.COLORS['RESET']}"

        return message


def parse_log_level(name: Optional[str], default: int = logging.INFO) -> int:
    """
    Map a level name such as "info", "warn" or "error" to a logging level.

    Unknown or empty names fall back to ``default``.
    """
    if not name:
        return default
    return LOG_LEVEL_NAMES.get(name.strip().lower(), default)


def setup_colored_logging(level: int = logging.INFO, stream=None) -> None:
    """
    Configure colored logging for the application.

    Args:
        level: Logging level (default: logging.INFO)
        stream: Output stream (default: sys.stderr)
    """
    stream = stream or sys.stderr
    formatter = ColoredFormatter(
        fmt="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=stream,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


class EnhancedLogger:
    """Enhanced logger wrapper with custom level methods."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def progress(self, msg, *args, **kwargs):
        """Log with PROGRESS level (bright blue) - progress updates."""
        self._logger.log(PROGRESS_LEVEL, msg, *args, **kwargs)

    def success(self, msg, *args, **kwargs):
        """Log with SUCCESS level (bright green) - successful operations."""
        self._logger.log(SUCCESS_LEVEL, msg, *args, **kwargs)

    def notice(self, msg, *args, **kwargs):
        """Log with NOTICE level (bright cyan) - important notices."""
        self._logger.log(NOTICE_LEVEL, msg, *args, **kwargs)

    # Delegate standard logger methods (debug, info, warning, error, ...)
    def __getattr__(self, name):
        return getattr(self._logger, name)


def get_colored_logger(name: str) -> EnhancedLogger:
    """
    Get an enhanced logger instance with custom level methods.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Enhanced logger instance exposing progress/success/notice
    """
    return EnhancedLogger(logging.getLogger(name))
