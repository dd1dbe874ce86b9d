"""Shared pytest fixtures for Dendrite tests."""
import logging
import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest
import yaml

from dendrite.files.service import FileService
from dendrite.infrastructure.logger import Logger


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests (symlinks in its path resolved)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    """Create a source directory with test files."""
    source = temp_dir / "source"
    source.mkdir()

    (source / "alpha.txt").write_text("alpha content")
    (source / "zebra.txt").write_text("zebra")
    (source / "page.html").write_text("<!DOCTYPE html><html><body>hi</body></html>")

    (source / "subdir").mkdir()
    (source / "subdir" / "nested.txt").write_text("Nested content")

    (source / "empty").mkdir()

    return source


@pytest.fixture
def outside_dir(temp_dir: Path) -> Path:
    """A directory next to the source that must never be reachable."""
    outside = temp_dir / "outside"
    outside.mkdir()
    (outside / "secret.txt").write_text("top secret")
    return outside


@pytest.fixture
def numbered_dir(temp_dir: Path) -> Path:
    """A source directory with ten files named file_0.txt .. file_9.txt."""
    numbered = temp_dir / "numbered"
    numbered.mkdir()
    for i in range(10):
        (numbered / f"file_{i}.txt").write_text(f"Content {i}")
    return numbered


@pytest.fixture
def logger() -> Logger:
    """Create a quiet test logger."""
    return Logger("dendrite.test", level="DEBUG", handlers=[logging.NullHandler()])


@pytest.fixture
def service(source_dir: Path, logger: Logger) -> FileService:
    """FileService with a single "/public" root over source_dir."""
    return FileService([("/public", str(source_dir))], logger=logger)


@pytest.fixture
def config_file(temp_dir: Path, source_dir: Path) -> Path:
    """Create a configuration file."""
    config_path = temp_dir / "dendrite.yaml"
    config = {
        "main": {"listen": "127.0.0.1", "port": 8080},
        "log": {"level": "debug", "format": "json"},
        "file_roots": [{"virtual": "/public", "source": str(source_dir)}],
    }
    with open(config_path, "w") as f:
        yaml.safe_dump(config, f)
    return config_path
