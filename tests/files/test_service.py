"""Tests for the FileService facade."""

import pytest

from dendrite.core.constants import ResourceKind
from dendrite.files.context import RequestContext
from dendrite.files.errors import (
    CanceledError,
    NotADirectory,
    OutsideRootError,
    RegistryError,
    RootNotFoundError,
)
from dendrite.files.service import FileService


@pytest.fixture
def multi_service(source_dir, outside_dir, logger):
    return FileService([("/public", str(source_dir)), ("/private", str(outside_dir))], logger=logger)


@pytest.fixture
def slash_service(source_dir, logger):
    return FileService([("/", str(source_dir))], logger=logger)


class TestFileService:
    def test_roots(self, multi_service):
        assert [r.virtual for r in multi_service.roots()] == ["/public", "/private"]
        assert not multi_service.has_single_root_slash()

    def test_resolve(self, service):
        d = service.resolve("/public", "subdir/nested.txt")
        assert d.virtual_path == "/public/subdir/nested.txt"
        assert d.metadata.size_bytes == len("Nested content")

    def test_resolve_unknown_root(self, service):
        with pytest.raises(RootNotFoundError, match="file root not found: /nope") as exc_info:
            service.resolve("/nope", "a.txt")
        assert exc_info.value.virtual_path == "/nope"

    def test_resolve_traversal(self, service):
        with pytest.raises(OutsideRootError):
            service.resolve("/public", "../outside/secret.txt")

    def test_list_directory(self, service):
        names = sorted(d.name for d in service.list_directory("/public", "subdir"))
        assert names == ["nested.txt"]

    def test_list_file_fails(self, service):
        with pytest.raises(NotADirectory):
            service.list_directory("/public", "alpha.txt")

    def test_list_directory_canceled(self, service):
        ctx = RequestContext()
        ctx.cancel()
        with pytest.raises(CanceledError):
            service.list_directory("/public", "", ctx)

    def test_list_roots(self, multi_service):
        roots = multi_service.list_roots()
        assert [d.name for d in roots] == ["public", "private"]
        assert all(d.kind is ResourceKind.FOLDER for d in roots)
        assert [d.virtual_path for d in roots] == ["/public", "/private"]

    def test_collection_lists_roots(self, multi_service):
        assert [d.name for d in multi_service.list_collection()] == ["public", "private"]

    def test_collection_with_single_slash_root(self, slash_service):
        """A lone "/" root shows its contents instead of one folder entry."""
        assert slash_service.has_single_root_slash()
        entries = slash_service.list_collection()
        assert sorted(d.name for d in entries) == [
            "alpha.txt",
            "empty",
            "page.html",
            "subdir",
            "zebra.txt",
        ]
        assert all(d.virtual_path.startswith("/") for d in entries)
        assert "/alpha.txt" in [d.virtual_path for d in entries]

    def test_registry_errors_propagate(self, temp_dir, logger):
        with pytest.raises(RegistryError):
            FileService([("/public", str(temp_dir / "missing"))], logger=logger)


class TestMatchRoot:
    def test_exact_root(self, multi_service):
        root, rel = multi_service.match_root("/public")
        assert root.virtual == "/public"
        assert rel == ""

    def test_nested_path(self, multi_service):
        root, rel = multi_service.match_root("/private/secret.txt")
        assert root.virtual == "/private"
        assert rel == "secret.txt"

    def test_missing_leading_slash(self, multi_service):
        root, rel = multi_service.match_root("public/a/b.txt")
        assert (root.virtual, rel) == ("/public", "a/b.txt")

    def test_prefix_is_not_a_match(self, multi_service):
        with pytest.raises(RootNotFoundError):
            multi_service.match_root("/publicity/a.txt")

    def test_slash_root_matches_everything(self, slash_service):
        root, rel = slash_service.match_root("/subdir/nested.txt")
        assert root.virtual == "/"
        assert rel == "subdir/nested.txt"

    def test_named_root_wins_over_slash(self, source_dir, outside_dir, logger):
        service = FileService([("/", str(source_dir)), ("/private", str(outside_dir))], logger=logger)
        root, rel = service.match_root("/private/secret.txt")
        assert root.virtual == "/private"
        root, rel = service.match_root("/alpha.txt")
        assert (root.virtual, rel) == ("/", "alpha.txt")
