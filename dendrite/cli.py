#!/usr/bin/env python3
"""Command-line interface for Dendrite.

This module provides the CLI for running the Dendrite file server:
- Argument parsing
- Configuration loading (file, environment, flags)
- Configuration check mode
- Logging setup
- Help and version information

Example:
    >>> from dendrite.cli import parse_arguments
    >>> args = parse_arguments(['--file-root', '/public:/srv/public', 'run'])
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

from dendrite.core.constants import DEFAULT_CONFIG_PATH, DENDRITE_VERSION, ConfigKey
from dendrite.files.errors import RegistryError
from dendrite.infrastructure.config_manager import ConfigError, ConfigManager, Settings
from dendrite.infrastructure.logger import Logger, set_global_logger

# Version information
VERSION = DENDRITE_VERSION
DESCRIPTION = "Dendrite - read-only file server for configured virtual roots"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
    """
    parser = argparse.ArgumentParser(
        prog="dendrite",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve a single directory as the root collection
  dendrite --file-root /:/srv/files run

  # Serve two virtual roots on all interfaces
  dendrite --listen 0.0.0.0 --file-root /public:/srv/public,/media:/srv/media run

  # Check a configuration file without starting the server
  dendrite --config /etc/dendrite/dendrite.yaml run --config-check
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f"Configuration file path (YAML format, default: {DEFAULT_CONFIG_PATH})",
    )

    # Server options
    server_group = parser.add_argument_group("server options")

    server_group.add_argument(
        "--listen",
        metavar="ADDR",
        type=str,
        help="Listen address (default: 127.0.0.1)",
    )

    server_group.add_argument(
        "--port",
        metavar="N",
        type=int,
        help="Port to listen on (default: 3000)",
    )

    server_group.add_argument(
        "--file-root",
        metavar="/VIRTUAL:/SOURCE",
        action="append",
        dest="file_roots",
        help="File root mapping (repeatable or comma-separated)",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--log-level",
        metavar="LEVEL",
        type=str,
        help="Log level: debug, info, warn, error (default: info)",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Log file path, or '-' for stdout (default: stderr)",
    )

    log_group.add_argument(
        "--log-format",
        metavar="FORMAT",
        type=str,
        help="Log format: text or json (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    run_parser = subparsers.add_parser("run", help="Start the file server")
    run_parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit",
    )

    return parser.parse_args(args)


def build_config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build configuration overrides from command-line arguments.

    Only flags that were given are included, so they override lower
    layers without masking them.

    Args:
        args: Parsed arguments namespace

    Returns:
        Configuration dictionary for ConfigManager
    """
    config: Dict[str, Any] = {}

    main_section = {
        ConfigKey.LISTEN: args.listen,
        ConfigKey.PORT: args.port,
    }
    main_section = {k: v for k, v in main_section.items() if v is not None}
    if main_section:
        config[ConfigKey.MAIN] = main_section

    log_section = {
        ConfigKey.LOG_LEVEL: args.log_level,
        ConfigKey.LOG_FILE: args.log_file,
        ConfigKey.LOG_FORMAT: args.log_format,
    }
    log_section = {k: v for k, v in log_section.items() if v is not None}
    if log_section:
        config[ConfigKey.LOG] = log_section

    if args.file_roots:
        config[ConfigKey.FILE_ROOTS] = list(args.file_roots)

    return config


def load_settings(args: argparse.Namespace) -> Settings:
    """
    Resolve settings from defaults, config file, environment and flags.

    A missing config file is not an error; defaults apply.

    Raises:
        CLIError: If the configuration cannot be read or is invalid
    """
    try:
        config = ConfigManager(config_file=args.config)
        config.load_dict(build_config_from_args(args))
        return config.load_settings()
    except ConfigError as e:
        raise CLIError(f"load config: {e}") from e


def setup_logging(settings: Settings) -> Logger:
    """
    Setup logging from the ``log`` settings.

    Args:
        settings: Validated runtime settings

    Returns:
        Configured logger instance

    Raises:
        CLIError: If the log file cannot be opened
    """
    try:
        logger = Logger.from_settings(
            name="dendrite",
            log_file=settings.log_file,
            log_format=settings.log_format,
            level=settings.log_level,
        )
    except (OSError, ValueError) as e:
        raise CLIError(f"setup logger: {e}") from e

    set_global_logger(logger)
    return logger


def print_banner(logger: Logger, settings: Settings) -> None:
    """
    Log startup banner with version information.

    Args:
        logger: Logger instance
        settings: Validated runtime settings
    """
    logger.info(f"Dendrite v{VERSION}")
    for root in settings.file_roots:
        logger.info("File root", virtual=root.virtual, source=root.source)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Handles argument parsing and configuration, then passes control to
    dendrite.main for serving.
    """
    try:
        args = parse_arguments(argv)
        settings = load_settings(args)

        if args.config_check:
            print(f"Config OK: {args.config} (file roots: {len(settings.file_roots)})")
            return 0

        logger = setup_logging(settings)
        print_banner(logger, settings)

        from dendrite.main import run_dendrite

        return run_dendrite(args, settings, logger)

    except (CLIError, RegistryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
