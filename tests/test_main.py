"""Tests for the DendriteMain lifecycle controller."""

import argparse
import dataclasses
import logging
import signal
import threading
import time
import urllib.request
from unittest.mock import MagicMock, patch

import pytest

from dendrite.files.errors import RegistryError
from dendrite.files.service import FileService
from dendrite.infrastructure.config_manager import FileRootConfig, Settings
from dendrite.infrastructure.logger import Logger
from dendrite.main import DendriteMain, run_dendrite
from dendrite.server.http import FileServer


@pytest.fixture
def mock_args():
    return argparse.Namespace(command="run", config_check=False)


@pytest.fixture
def settings(source_dir):
    return Settings(
        listen="127.0.0.1",
        port=3000,
        request_timeout=30.0,
        log_file="",
        log_level="info",
        log_format="text",
        file_roots=(FileRootConfig("/public", str(source_dir)),),
    )


@pytest.fixture
def quiet_logger():
    return Logger("dendrite.test.main", handlers=[logging.NullHandler()])


class TestInit:
    def test_stores_arguments(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        assert main.args is mock_args
        assert main.settings is settings
        assert main.logger is quiet_logger

    def test_components_start_empty(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        assert main.file_service is None
        assert main.server is None
        assert not main.shutdown_event.is_set()


class TestInitializeComponents:
    def test_builds_service_and_server(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        main.initialize_components()

        assert isinstance(main.file_service, FileService)
        assert [r.virtual for r in main.file_service.roots()] == ["/public"]
        assert isinstance(main.server, FileServer)
        assert main.server.port == 3000
        assert main.server.request_timeout == 30.0
        assert not main.server.is_running()

    def test_bad_root_raises(self, mock_args, settings, quiet_logger, temp_dir):
        broken = dataclasses.replace(
            settings, file_roots=(FileRootConfig("/x", str(temp_dir / "gone")),)
        )
        main = DendriteMain(mock_args, broken, quiet_logger)
        with pytest.raises(RegistryError):
            main.initialize_components()


class TestSignalHandlers:
    def test_signal_sets_shutdown_event(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        with patch("dendrite.main.signal.signal") as register:
            main.setup_signal_handlers()

        handlers = {call.args[0]: call.args[1] for call in register.call_args_list}
        assert set(handlers) == {signal.SIGTERM, signal.SIGINT}

        handlers[signal.SIGTERM](signal.SIGTERM, None)
        assert main.shutdown_event.is_set()


class TestServe:
    def test_serves_until_shutdown(self, mock_args, settings, quiet_logger):
        """The server answers requests while running and stops on cleanup."""
        main = DendriteMain(mock_args, settings, quiet_logger)
        main.initialize_components()
        main.server.port = 0

        result = {}
        thread = threading.Thread(target=lambda: result.setdefault("code", main.serve()))
        thread.start()
        try:
            for _ in range(100):
                if main.server.is_running():
                    break
                time.sleep(0.05)
            with urllib.request.urlopen(main.server.get_url() + "/api/v1/ping", timeout=5) as r:
                assert r.status == 200
        finally:
            main.shutdown_event.set()
            thread.join(timeout=5)
            main.cleanup()

        assert result["code"] == 0
        assert not main.server.is_running()

    def test_unexpected_stop(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        main.server = MagicMock()
        main.server.is_running.return_value = False
        assert main.serve() == 1


class TestCleanup:
    def test_without_components(self, mock_args, settings, quiet_logger):
        DendriteMain(mock_args, settings, quiet_logger).cleanup()

    def test_stop_failure_is_logged(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        main.server = MagicMock()
        main.server.stop.side_effect = RuntimeError("stuck")
        with patch.object(quiet_logger, "warning") as warning:
            main.cleanup()
        warning.assert_called_once()


class TestRun:
    def test_runs_successfully(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        with patch.object(DendriteMain, "setup_signal_handlers"), patch.object(
            DendriteMain, "serve", return_value=0
        ), patch.object(DendriteMain, "cleanup") as cleanup:
            assert main.run() == 0
        cleanup.assert_called_once()

    def test_handles_keyboard_interrupt(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        with patch.object(DendriteMain, "initialize_components", side_effect=KeyboardInterrupt()):
            assert main.run() == 130

    def test_handles_unexpected_exception(self, mock_args, settings, quiet_logger):
        main = DendriteMain(mock_args, settings, quiet_logger)
        with patch.object(
            DendriteMain, "initialize_components", side_effect=RuntimeError("broken")
        ):
            assert main.run() == 1

    def test_run_dendrite(self, mock_args, settings, quiet_logger):
        with patch.object(DendriteMain, "run", return_value=0) as run:
            assert run_dendrite(mock_args, settings, quiet_logger) == 0
        run.assert_called_once()
