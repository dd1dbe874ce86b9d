"""Tests for dendrite.core.constants."""

import os
import stat

from dendrite.core.constants import (
    API_PREFIX,
    DEFAULT_CONFIG,
    FILES_PREFIX,
    PING_PATH,
    ConfigKey,
    ErrorCode,
    Limits,
    ResourceKind,
)


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_codes_in_range(self):
        """All error codes fit in the 0-9 range."""
        for code in ErrorCode:
            assert 0 <= code <= 9

    def test_success_is_zero(self):
        assert ErrorCode.SUCCESS == 0

    def test_codes_are_unique(self):
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))


class TestResourceKind:
    """Tests for ResourceKind classification."""

    def test_wire_values(self):
        assert ResourceKind.FILE.value == "file"
        assert ResourceKind.FOLDER.value == "folder"
        assert ResourceKind.SYMLINK.value == "symlink"

    def test_from_mode_directory(self, temp_dir):
        assert ResourceKind.from_mode(os.lstat(temp_dir).st_mode) is ResourceKind.FOLDER

    def test_from_mode_regular_file(self, temp_dir):
        path = temp_dir / "file.txt"
        path.write_text("x")
        assert ResourceKind.from_mode(os.lstat(path).st_mode) is ResourceKind.FILE

    def test_from_mode_symlink(self, temp_dir):
        target = temp_dir / "target.txt"
        target.write_text("x")
        link = temp_dir / "link"
        link.symlink_to(target)
        assert ResourceKind.from_mode(os.lstat(link).st_mode) is ResourceKind.SYMLINK

    def test_from_mode_other_types_are_files(self):
        """FIFOs, sockets and devices are reported as files."""
        assert ResourceKind.from_mode(stat.S_IFIFO | 0o644) is ResourceKind.FILE
        assert ResourceKind.from_mode(stat.S_IFSOCK | 0o644) is ResourceKind.FILE


class TestLimits:
    def test_page_limits(self):
        assert Limits.DEFAULT_PAGE_LIMIT == 200
        assert Limits.MAX_PAGE_LIMIT == 500
        assert Limits.DEFAULT_PAGE_LIMIT <= Limits.MAX_PAGE_LIMIT

    def test_sniff_length(self):
        assert Limits.SNIFF_LENGTH == 512


class TestPaths:
    def test_api_paths(self):
        assert API_PREFIX == "/api/v1"
        assert FILES_PREFIX == "/api/v1/files"
        assert PING_PATH == "/api/v1/ping"


class TestDefaultConfig:
    def test_main_defaults(self):
        main = DEFAULT_CONFIG[ConfigKey.MAIN]
        assert main[ConfigKey.LISTEN] == "127.0.0.1"
        assert main[ConfigKey.PORT] == 3000
        assert main[ConfigKey.REQUEST_TIMEOUT] == Limits.DEFAULT_REQUEST_TIMEOUT

    def test_log_defaults(self):
        log = DEFAULT_CONFIG[ConfigKey.LOG]
        assert log[ConfigKey.LOG_FILE] == ""
        assert log[ConfigKey.LOG_LEVEL] == "info"
        assert log[ConfigKey.LOG_FORMAT] == "text"

    def test_no_default_roots(self):
        assert DEFAULT_CONFIG[ConfigKey.FILE_ROOTS] == []
