#!/usr/bin/env python3

from __future__ import (
    annotations,
)

import getpass
import json
import sys
from typing import List, Optional

from archive_ops import ConversionPipeline, LoggingReporter
from archive_ops.errors import PackingError
from archive_ops.models import ConversionConfig, PasswordMode
from archive_ops.password_policy import confirm_secret
from cli_args import CommandLineArgs
from colored_logger import get_colored_logger, parse_log_level, setup_colored_logging
from html_renderer import render_html_file
from settings import Settings, build_conversion_config

logger = get_colored_logger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Orchestrates the entire flow:
    1. Parse CLI args and load settings
    2. Build and validate the conversion config
    3. Collect the password when it has to be typed in
    4. Run the conversion pipeline

    Returns the process exit code: 0 on success, 1 on a fatal error or when
    every file failed.
    """
    cli_args = _parse_cli_args(argv)
    setup_colored_logging(level=parse_log_level(cli_args.log_level))

    try:
        settings = Settings(cli_args.config)
        if cli_args.log_level is None and settings.log_level:
            setup_colored_logging(level=parse_log_level(settings.log_level))

        config = build_conversion_config(settings, cli_args)

        if cli_args.show_config:
            print(json.dumps(config.describe(), indent=2))
            return 0

        _collect_manual_password(config)
        summary = _run_conversion(config)
    except PackingError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1

    if summary.units_failed and not summary.units_processed:
        logger.error("Every file failed to convert. Check the log above for details.")
        return 1
    if summary.units_failed:
        logger.notice(
            "%d file(s) failed to convert. Check the log above for details.",
            summary.units_failed,
        )
    return 0


def _parse_cli_args(argv: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parses and returns the command-line arguments.
    """
    return CommandLineArgs(argv)


def _collect_manual_password(config: ConversionConfig) -> None:
    """
    Prompts twice for the password in manual mode unless one was preset
    through FILE_TO_HTML_PASSWORD.
    """
    if config.password_mode is not PasswordMode.MANUAL or config.preset_secret:
        return

    secret = getpass.getpass("Enter password: ")
    confirmation = getpass.getpass("Confirm password: ")
    config.preset_secret = confirm_secret(secret, confirmation)


def _run_conversion(config: ConversionConfig):
    reporter = LoggingReporter(quiet=config.no_progress)
    pipeline = ConversionPipeline(config, reporter=reporter, renderer=render_html_file)
    summary = pipeline.run()
    if summary.units_processed:
        logger.info("HTML files written to %s", summary.output_dir)
    return summary


if __name__ == "__main__":
    sys.exit(main())
