"""Tests for the metadata extractor."""

import os
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from dendrite.core.constants import MIME_DIRECTORY, MIME_SYMLINK, ResourceKind
from dendrite.files.base import Root
from dendrite.files.metadata import (
    MetadataExtractor,
    birth_time,
    format_permission_mode,
    lookup_group,
    lookup_user,
    mime_for,
    size_for,
    sniff_file,
    timestamp_from_ns,
)
from dendrite.files.resolver import PathResolver


def unknown_ids(numeric_id):
    return f"id-{numeric_id}"


class TestPermissionMode:
    @pytest.mark.parametrize(
        "mode,expected",
        [(0o100644, "0644"), (0o040755, "0755"), (0o100600, "0600"), (0o104755, "0755")],
    )
    def test_format(self, mode, expected):
        assert format_permission_mode(mode) == expected

    def test_real_file(self, source_dir):
        path = source_dir / "alpha.txt"
        path.chmod(0o640)
        d = PathResolver().describe(Root("/public", str(source_dir)), "alpha.txt")
        assert d.metadata.permission_mode == "0640"


class TestSize:
    def test_only_regular_files_report_size(self, source_dir):
        st = os.stat(source_dir / "alpha.txt")
        assert size_for(ResourceKind.FILE, st) == st.st_size
        assert size_for(ResourceKind.FOLDER, st) is None
        assert size_for(ResourceKind.SYMLINK, st) is None


class TestOwnerLookup:
    def test_known_user(self):
        assert lookup_user(os.getuid()) != ""

    def test_unknown_ids_render_numerically(self):
        assert lookup_user(2_000_000_001) == "2000000001"
        assert lookup_group(2_000_000_002) == "2000000002"

    def test_injected_lookups(self, source_dir):
        extractor = MetadataExtractor(user_lookup=unknown_ids, group_lookup=unknown_ids)
        d = PathResolver(extractor).describe(Root("/public", str(source_dir)), "alpha.txt")
        st = os.stat(source_dir / "alpha.txt")
        assert d.metadata.user_id == st.st_uid
        assert d.metadata.group_id == st.st_gid
        assert d.metadata.user == unknown_ids(st.st_uid)

    def test_uid_zero_without_entry_is_empty(self, monkeypatch):
        def missing(_):
            raise KeyError("no entry")

        monkeypatch.setattr("dendrite.files.metadata.pwd.getpwuid", missing)
        monkeypatch.setattr("dendrite.files.metadata.grp.getgrgid", missing)
        assert lookup_user(0) == ""
        assert lookup_group(0) == ""
        assert lookup_user(1000) == "1000"


class TestTimes:
    def test_timestamp_from_ns(self):
        ts = timestamp_from_ns(1_700_000_000_123_456_789)
        assert ts == datetime(2023, 11, 14, 22, 13, 20, 123456, tzinfo=timezone.utc)

    def test_birth_time_absent(self):
        assert birth_time(SimpleNamespace()) is None

    def test_birth_time_seconds(self):
        born = birth_time(SimpleNamespace(st_birthtime=1_700_000_000.0))
        assert born == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_birth_time_non_positive(self):
        assert birth_time(SimpleNamespace(st_birthtime_ns=0)) is None

    def test_times_follow_modification(self, source_dir):
        path = source_dir / "alpha.txt"
        os.utime(path, ns=(1_600_000_000_000_000_000, 1_650_000_000_000_000_000))
        d = PathResolver().describe(Root("/public", str(source_dir)), "alpha.txt")
        assert d.metadata.accessed_at == datetime.fromtimestamp(1_600_000_000, tz=timezone.utc)
        assert d.metadata.modified_at == datetime.fromtimestamp(1_650_000_000, tz=timezone.utc)
        assert d.metadata.changed_at.tzinfo is timezone.utc


class TestMime:
    def test_folder_sentinel(self, source_dir):
        assert mime_for(ResourceKind.FOLDER, ResourceKind.FOLDER, str(source_dir)) == MIME_DIRECTORY

    def test_symlink_sentinel(self, source_dir):
        """Symlinks get the symlink sentinel whatever they point at."""
        path = str(source_dir / "alpha.txt")
        assert mime_for(ResourceKind.SYMLINK, ResourceKind.FILE, path) == MIME_SYMLINK
        assert mime_for(ResourceKind.SYMLINK, ResourceKind.FOLDER, path) == MIME_SYMLINK

    def test_sniffed(self, source_dir):
        path = str(source_dir / "page.html")
        assert mime_for(ResourceKind.FILE, ResourceKind.FILE, path) == "text/html; charset=utf-8"

    def test_unreadable_file_is_empty(self, source_dir):
        assert sniff_file(str(source_dir / "missing.bin")) == ""

    def test_empty_file(self, source_dir):
        path = source_dir / "blank"
        path.write_bytes(b"")
        assert sniff_file(str(path)) == "text/plain; charset=utf-8"
