import argparse
from typing import List, Optional

from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)


def _parse_csv(csv_str: str) -> List[str]:
    """
    Splits a comma-separated string into a list of non-empty items, stripping whitespace.
    """
    if not csv_str:
        return []
    return [item.strip() for item in csv_str.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="file-to-html",
        description=(
            "Pack files into (optionally encrypted) ZIP archives and embed them "
            "as Base64 in self-contained HTML pages."
        ),
    )
    parser.add_argument(
        "input_path",
        nargs="?",
        default=None,
        metavar="input",
        help="File or directory to convert.",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help='Output directory (default "output").',
    )
    parser.add_argument(
        "--mode",
        choices=["individual", "compressed"],
        default=None,
        help="One HTML page per file (individual) or one for the whole tree (compressed).",
    )
    parser.add_argument(
        "--include",
        type=str,
        default=None,
        help='Comma-separated wildcard patterns to include (default "*").',
    )
    parser.add_argument(
        "--exclude",
        type=str,
        default=None,
        help="Comma-separated wildcard patterns to exclude.",
    )
    parser.add_argument(
        "--compress",
        dest="compress",
        action="store_true",
        default=None,
        help="Deflate each file in individual mode (default).",
    )
    parser.add_argument(
        "--no-compress",
        dest="compress",
        action="store_false",
        help="Store files without compression in individual mode.",
    )
    parser.add_argument(
        "--password-mode",
        choices=["random", "manual", "timestamp", "none"],
        default=None,
        help="Where the archive password comes from (default random).",
    )
    parser.add_argument(
        "--display-password",
        dest="display_password",
        action="store_true",
        default=None,
        help="Show the password in the HTML page.",
    )
    parser.add_argument(
        "--no-display-password",
        dest="display_password",
        action="store_false",
        help="Write the password to a .html.key file instead of the page.",
    )
    parser.add_argument(
        "--compression-level",
        choices=["stored", "deflated"],
        default=None,
        help="ZIP compression method (default deflated).",
    )
    parser.add_argument(
        "--layer",
        choices=["none", "single", "double"],
        default=None,
        help="Number of ZIP layers around the content (default double).",
    )
    parser.add_argument(
        "--encryption-method",
        choices=["aes128", "aes192", "aes256"],
        default=None,
        help="AES key length (default aes256).",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        default=None,
        help="Do not log progress lines.",
    )
    parser.add_argument(
        "--max-size",
        type=float,
        default=None,
        help="Skip files larger than this many megabytes.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Files converted concurrently in individual mode (default 1).",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warn", "error"],
        default=None,
        help="Logging verbosity (default info).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON or YAML settings file providing defaults.",
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the resolved configuration as JSON and exit.",
    )
    return parser


class CommandLineArgs:
    """
    Parses command-line arguments. Options left out stay None so that the
    settings file (or the built-in default) decides.
    """

    def __init__(self, argv: Optional[List[str]] = None) -> None:
        self.parser = build_parser()
        self.args = self.parser.parse_args(argv)

        self.input_path: Optional[str] = self.args.input_path
        self.output: Optional[str] = self.args.output
        self.mode: Optional[str] = self.args.mode
        self.include: Optional[List[str]] = (
            _parse_csv(self.args.include) if self.args.include is not None else None
        )
        self.exclude: Optional[List[str]] = (
            _parse_csv(self.args.exclude) if self.args.exclude is not None else None
        )
        self.compress: Optional[bool] = self.args.compress
        self.password_mode: Optional[str] = self.args.password_mode
        self.display_password: Optional[bool] = self.args.display_password
        self.compression_level: Optional[str] = self.args.compression_level
        self.layer: Optional[str] = self.args.layer
        self.encryption_method: Optional[str] = self.args.encryption_method
        self.no_progress: Optional[bool] = self.args.no_progress
        self.max_size: Optional[float] = self.args.max_size
        self.workers: Optional[int] = self.args.workers
        self.log_level: Optional[str] = self.args.log_level
        self.config: Optional[str] = self.args.config
        self.show_config: bool = self.args.show_config

        if self.include is not None:
            logger.debug("Parsed %d include pattern(s)", len(self.include))
        if self.exclude is not None:
            logger.debug("Parsed %d exclude pattern(s)", len(self.exclude))
