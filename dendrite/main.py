#!/usr/bin/env python3
"""Main entry point for the Dendrite server.

This module handles:
- Component initialization (FileService, FileServer)
- Signal handling for graceful shutdown
- Cleanup on exit

Example:
    >>> from dendrite.main import run_dendrite
    >>> run_dendrite(args, settings, logger)
"""

import argparse
import signal
import sys
import threading
from typing import Optional

from dendrite.files.service import FileService
from dendrite.infrastructure.config_manager import Settings
from dendrite.infrastructure.logger import Logger
from dendrite.server.http import FileServer


class DendriteMain:
    """
    Main class for the Dendrite server.

    Handles component lifecycle, serving, and shutdown.
    """

    def __init__(self, args: argparse.Namespace, settings: Settings, logger: Logger):
        """
        Initialize Dendrite main controller.

        Args:
            args: Parsed command-line arguments
            settings: Validated runtime settings
            logger: Logger instance
        """
        self.args = args
        self.settings = settings
        self.logger = logger
        self.shutdown_event = threading.Event()

        # Components
        self.file_service: Optional[FileService] = None
        self.server: Optional[FileServer] = None

    def initialize_components(self) -> None:
        """
        Initialize all Dendrite components.

        Creates and configures:
        - FileService (root registry, resolver, lister)
        - FileServer

        Raises:
            RegistryError: If a file root cannot be registered
        """
        self.logger.info("Initializing components...")

        self.logger.debug("Creating FileService", file_roots=len(self.settings.file_roots))
        self.file_service = FileService(self.settings.file_roots, logger=self.logger)

        self.logger.debug("Creating FileServer")
        self.server = FileServer(
            self.file_service,
            host=self.settings.listen,
            port=self.settings.port,
            request_timeout=self.settings.request_timeout,
            logger=self.logger,
        )

        self.logger.info("All components initialized successfully")

    def setup_signal_handlers(self) -> None:
        """
        Setup signal handlers for graceful shutdown.

        Handles:
        - SIGTERM: Graceful shutdown
        - SIGINT: Graceful shutdown (Ctrl+C)
        """

        def signal_handler(signum, frame):
            """Handle shutdown signals."""
            sig_name = signal.Signals(signum).name
            self.logger.info(f"Received signal {sig_name}, shutting down...")
            self.shutdown_event.set()

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        self.logger.debug("Signal handlers registered")

    def serve(self) -> int:
        """
        Start the server and block until shutdown is requested.

        Returns:
            Exit code (0 for success)
        """
        self.server.start()
        self.logger.info(
            "dendrite server started", port=self.server.port, listen=self.settings.listen
        )

        while not self.shutdown_event.wait(timeout=0.5):
            if not self.server.is_running():
                self.logger.error("File server stopped unexpectedly")
                return 1
        return 0

    def cleanup(self) -> None:
        """
        Cleanup resources on shutdown.

        Stops the server, cancelling listings still in progress.
        """
        self.logger.info("Cleaning up...")

        if self.server:
            try:
                self.server.stop()
            except Exception as e:
                self.logger.warning(f"Failed to stop server: {e}")

        self.logger.info("Cleanup complete")

    def run(self) -> int:
        """
        Run Dendrite main loop.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            self.initialize_components()
            self.setup_signal_handlers()
            return self.serve()

        except KeyboardInterrupt:
            self.logger.info("Interrupted by user")
            return 130

        except Exception as e:
            self.logger.exception("Fatal error", e)
            return 1

        finally:
            self.cleanup()


def run_dendrite(args: argparse.Namespace, settings: Settings, logger: Logger) -> int:
    """
    Main entry point for running Dendrite.

    Args:
        args: Parsed command-line arguments
        settings: Validated runtime settings
        logger: Logger instance

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    main = DendriteMain(args, settings, logger)
    return main.run()


def main():
    """
    Entry point when run as standalone script.

    Typically called via cli.py, but can be run directly for testing.
    """
    from dendrite.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
