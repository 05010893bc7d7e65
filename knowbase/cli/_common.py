"""Helpers shared by the knowbase CLI tools."""

from __future__ import annotations

import argparse
import sys

from knowbase.config.loader import load_config
from knowbase.config.settings import Settings
from knowbase.utils.errors import ConfigurationError
from knowbase.utils.logging import configure_logging

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="YAML configuration file (default: config/config.yaml, optional)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level",
    )


def load_settings(args: argparse.Namespace) -> Settings | None:
    """Load settings and configure logging; print the error and return None on failure."""
    try:
        settings = load_config(args.config)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return None

    configure_logging(
        log_level=args.log_level or settings.log_level,
        json_output=settings.app_env == "production",
        log_file=settings.log_file or None,
    )
    return settings
