"""Tests for RootRegistry."""

import pytest

from dendrite.files.base import Root
from dendrite.files.errors import RegistryError
from dendrite.files.registry import RootRegistry
from dendrite.infrastructure.config_manager import FileRootConfig


class TestRootRegistry:
    def test_lookup(self, source_dir):
        registry = RootRegistry([("/public", str(source_dir))])
        root = registry.lookup("/public")
        assert root == Root("/public", str(source_dir))

    def test_lookup_without_leading_slash(self, source_dir):
        registry = RootRegistry([("/public", str(source_dir))])
        assert registry.lookup("public") is registry.lookup("/public")

    def test_lookup_missing(self, source_dir):
        registry = RootRegistry([("/public", str(source_dir))])
        assert registry.lookup("/private") is None

    def test_order_preserved(self, source_dir, outside_dir):
        registry = RootRegistry([("/zeta", str(source_dir)), ("/alpha", str(outside_dir))])
        assert [r.virtual for r in registry.all()] == ["/zeta", "/alpha"]
        assert len(registry) == 2

    def test_all_is_a_snapshot(self, source_dir):
        registry = RootRegistry([("/public", str(source_dir))])
        registry.all().clear()
        assert len(registry.all()) == 1

    def test_accepts_root_and_config_objects(self, source_dir, outside_dir):
        registry = RootRegistry(
            [Root("/a", str(source_dir)), FileRootConfig("/b", str(outside_dir))]
        )
        assert [r.virtual for r in registry] == ["/a", "/b"]

    def test_source_is_canonical(self, temp_dir, source_dir):
        link = temp_dir / "source-link"
        link.symlink_to(source_dir)
        registry = RootRegistry([("/public", str(link) + "/")])
        assert registry.lookup("/public").source == str(source_dir)

    def test_empty(self):
        with pytest.raises(RegistryError, match="no file roots"):
            RootRegistry([])

    def test_duplicate(self, source_dir):
        with pytest.raises(RegistryError, match="duplicate file root: /public"):
            RootRegistry([("/public", str(source_dir)), ("/public", str(source_dir))])

    def test_broken_source_symlink(self, temp_dir):
        link = temp_dir / "dangling"
        link.symlink_to(temp_dir / "missing")
        with pytest.raises(RegistryError, match="resolve file root /public"):
            RootRegistry([("/public", str(link))])

    def test_single_slash_root(self, source_dir, outside_dir):
        assert RootRegistry([("/", str(source_dir))]).is_single_slash_root()
        assert not RootRegistry([("/public", str(source_dir))]).is_single_slash_root()
        assert not RootRegistry(
            [("/", str(source_dir)), ("/other", str(outside_dir))]
        ).is_single_slash_root()

    def test_independent_registries(self, source_dir, outside_dir):
        first = RootRegistry([("/public", str(source_dir))])
        second = RootRegistry([("/public", str(outside_dir))])
        assert first.lookup("/public").source != second.lookup("/public").source
