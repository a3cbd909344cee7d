"""Tests for the remote folder tree."""

import pytest

from cloudvault.exceptions import CloudVaultAPIError
from cloudvault.models import RemoteFolder
from cloudvault.sync.tree import RemoteTree


class TestRelativePaths:
    """Name-path mapping of remote folders."""

    def test_nested_paths(self):
        """Parent links are joined with forward slashes."""
        tree = RemoteTree(
            [
                RemoteFolder(id=1, name="Docs"),
                RemoteFolder(id=2, name="Reports", parent_id=1),
                RemoteFolder(id=3, name="2024", parent_id=2),
            ]
        )

        assert tree.paths() == ["Docs", "Docs/Reports", "Docs/Reports/2024"]
        assert tree.folder_id("Docs/Reports/2024") == 3
        assert tree.has_path("Docs/Reports")

    def test_root_and_unknown_paths(self):
        """The root and unknown paths have no folder id."""
        tree = RemoteTree([RemoteFolder(id=1, name="Docs")])

        assert tree.folder_id("") is None
        assert tree.folder_id("Missing") is None
        assert not tree.has_path("Missing")

    def test_parents_listed_first(self):
        """paths() orders shallow paths before deep ones."""
        tree = RemoteTree(
            [
                RemoteFolder(id=3, name="c", parent_id=2),
                RemoteFolder(id=2, name="b", parent_id=1),
                RemoteFolder(id=1, name="a"),
                RemoteFolder(id=4, name="z"),
            ]
        )

        assert tree.paths() == ["a", "z", "a/b", "a/b/c"]

    def test_duplicate_paths_keep_first(self):
        """Two folders with the same name path resolve to the first one."""
        tree = RemoteTree(
            [RemoteFolder(id=1, name="Docs"), RemoteFolder(id=2, name="Docs")]
        )

        assert tree.folder_id("Docs") == 1
        assert len(tree) == 2

    def test_parent_cycle_terminates(self):
        """A malformed parent cycle does not loop forever."""
        tree = RemoteTree(
            [
                RemoteFolder(id=1, name="a", parent_id=2),
                RemoteFolder(id=2, name="b", parent_id=1),
            ]
        )

        assert tree.relative_path(tree.folders[0]) == "b/a"


class TestFetch:
    """Recursive listing through the client."""

    @pytest.mark.asyncio
    async def test_fetch_walks_every_level(self, store):
        """fetch() lists each folder's children."""
        docs = store.add_folder("Docs")
        reports = store.add_folder("Reports", parent_id=docs)
        store.add_folder("Archive", parent_id=reports)
        store.add_folder("Photos")

        tree = await RemoteTree.fetch(store)

        assert tree.paths() == ["Docs", "Photos", "Docs/Reports", "Docs/Reports/Archive"]
        listed = [call[1] for call in store.calls_to("list_folders")]
        assert listed[0] is None
        assert len(listed) == 5
        assert docs in listed and reports in listed

    @pytest.mark.asyncio
    async def test_fetch_propagates_listing_errors(self, store):
        """A failed listing aborts the fetch."""
        store.fail_listing = True

        with pytest.raises(CloudVaultAPIError):
            await RemoteTree.fetch(store)


class TestEnsurePath:
    """Creating missing remote folders."""

    @pytest.mark.asyncio
    async def test_creates_missing_segments_root_to_leaf(self, store):
        """Every missing segment is created once, parents first."""
        tree = RemoteTree()

        folder_id = await tree.ensure_path(store, "a/b/c")

        creates = store.calls_to("create_folder")
        assert [call[1] for call in creates] == ["a", "b", "c"]
        assert creates[0][2] is None
        assert creates[1][2] == tree.folder_id("a")
        assert creates[2][2] == tree.folder_id("a/b")
        assert folder_id == tree.folder_id("a/b/c")

    @pytest.mark.asyncio
    async def test_reuses_existing_segments(self, store):
        """Only the missing tail is created."""
        docs = store.add_folder("Docs")
        tree = RemoteTree([RemoteFolder(id=docs, name="Docs")])

        await tree.ensure_path(store, "Docs/New")

        creates = store.calls_to("create_folder")
        assert creates == [("create_folder", "New", docs)]

    @pytest.mark.asyncio
    async def test_second_call_makes_no_requests(self, store):
        """Created folders are remembered for the rest of the pass."""
        tree = RemoteTree()
        first = await tree.ensure_path(store, "x/y")

        second = await tree.ensure_path(store, "x/y")

        assert first == second
        assert len(store.calls_to("create_folder")) == 2

    @pytest.mark.asyncio
    async def test_root_needs_nothing(self, store):
        """The root directory maps to no folder and no request."""
        tree = RemoteTree()

        assert await tree.ensure_path(store, "") is None
        assert store.calls == []
