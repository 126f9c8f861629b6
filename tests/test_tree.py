"""Tests for treesync.tree: path helpers, resolution and rebuild."""

import asyncio

import pytest

from treesync import EMPTY_TREE, PathNotFoundError, Tree, TreeEntry
from treesync.tree import (
    TreeCache,
    _is_root_path,
    rebuild_tree,
    resolve_path,
    split_chain,
    split_path,
)


def root_of(gateway, commit):
    return asyncio.run(gateway.get_tree(commit.tree))


class TestSplitPath:
    def test_simple(self):
        assert split_path("foo/bar") == ["foo", "bar"]

    def test_strips_slashes(self):
        assert split_path("/foo/bar/") == ["foo", "bar"]

    def test_drops_empty_segments(self):
        assert split_path("foo//bar") == ["foo", "bar"]

    def test_root(self):
        assert split_path("") == []
        assert split_path("/") == []
        assert _is_root_path("//")

    def test_rejects_dot(self):
        with pytest.raises(ValueError):
            split_path("foo/./bar")

    def test_rejects_dotdot(self):
        with pytest.raises(ValueError):
            split_path("foo/../bar")


class TestTreeValue:
    def test_replace_returns_new_entries(self):
        old = TreeEntry.blob("a", "1" * 40)
        tree = Tree("f" * 40, (old,))
        entries = tree.replace(TreeEntry.tree("a", "2" * 40))
        assert entries == (TreeEntry.tree("a", "2" * 40),)
        # the original is untouched
        assert tree.entries == (old,)

    def test_replace_appends_missing(self):
        tree = Tree("f" * 40, (TreeEntry.blob("a", "1" * 40),))
        assert [e.path for e in tree.replace(TreeEntry.blob("b", "2" * 40))] == ["a", "b"]

    def test_subtree_entry_ignores_blobs(self):
        tree = Tree("f" * 40, (TreeEntry.blob("a", "1" * 40),))
        assert tree.entry("a") is not None
        assert tree.subtree_entry("a") is None


class TestResolvePath:
    def test_full_chain(self, gateway, commit_files):
        commit = commit_files({"x/y/z/f.txt": b"f"})
        root = root_of(gateway, commit)
        chain = asyncio.run(resolve_path(gateway, TreeCache(), root, ["x", "y", "z"]))
        assert len(chain) == 4
        assert chain[0] == root
        assert chain[-1].names() == ["f.txt"]

    def test_partial_chain_is_not_an_error(self, gateway, commit_files):
        commit = commit_files({"x/f.txt": b"f"})
        root = root_of(gateway, commit)
        chain = asyncio.run(resolve_path(gateway, TreeCache(), root, ["x", "y", "z"]))
        assert len(chain) == 2
        assert chain[1].names() == ["f.txt"]

    def test_strict_rejects_missing_intermediate(self, gateway, commit_files):
        commit = commit_files({"x/f.txt": b"f"})
        root = root_of(gateway, commit)
        with pytest.raises(PathNotFoundError, match="x/y"):
            asyncio.run(resolve_path(gateway, TreeCache(), root, ["x", "y", "z"], strict=True))

    def test_strict_allows_missing_leaf(self, gateway, commit_files):
        commit = commit_files({"x/y/f.txt": b"f"})
        root = root_of(gateway, commit)
        chain = asyncio.run(resolve_path(gateway, TreeCache(), root, ["x", "y", "z"], strict=True))
        assert len(chain) == 3

    def test_blob_in_the_way_stops_chain(self, gateway, commit_files):
        commit = commit_files({"x": b"file, not a directory"})
        root = root_of(gateway, commit)
        chain = asyncio.run(resolve_path(gateway, TreeCache(), root, ["x", "y"]))
        assert chain == [root]

    def test_empty_parts(self, gateway, commit_files):
        commit = commit_files({"f.txt": b"f"})
        root = root_of(gateway, commit)
        assert asyncio.run(resolve_path(gateway, TreeCache(), root, [])) == [root]

    def test_populates_cache(self, gateway, commit_files):
        commit = commit_files({"x/y/f.txt": b"f"})
        root = root_of(gateway, commit)
        cache = TreeCache()
        chain = asyncio.run(resolve_path(gateway, cache, root, ["x", "y"]))
        assert len(cache) == 3
        for tree in chain:
            assert tree.sha in cache

    def test_cached_trees_are_not_refetched(self, recording, commit_files):
        commit = commit_files({"x/y/f.txt": b"f"})
        root = asyncio.run(recording.get_tree(commit.tree))
        cache = TreeCache()
        asyncio.run(resolve_path(recording, cache, root, ["x", "y"]))
        fetched = recording.count("get_tree")
        asyncio.run(resolve_path(recording, cache, root, ["x", "y"]))
        assert recording.count("get_tree") == fetched

    def test_shared_subtree_fetched_once(self, recording, commit_files):
        # a/same and b/same are the same tree object
        commit = commit_files({"a/same/f.txt": b"f", "a/other.txt": b"o", "b/same/f.txt": b"f"})
        root = asyncio.run(recording.get_tree(commit.tree))
        cache = TreeCache()
        asyncio.run(resolve_path(recording, cache, root, ["a", "same"]))
        before = recording.count("get_tree")
        asyncio.run(resolve_path(recording, cache, root, ["b", "same"]))
        # only b itself is new; b/same comes from the cache
        assert recording.count("get_tree") == before + 1


class TestSplitChain:
    def test_existing_leaf_is_removed(self):
        a, b, c = (Tree(ch * 40) for ch in "abc")
        parents, existing = split_chain([a, b, c], ["x", "y"])
        assert parents == [a, b]
        assert existing is c

    def test_missing_intermediates_are_padded(self):
        a, b = Tree("a" * 40), Tree("b" * 40)
        parents, existing = split_chain([a, b], ["x", "y", "z"])
        assert parents == [a, b, EMPTY_TREE]
        assert existing is None

    def test_missing_leaf_only(self):
        a, b = Tree("a" * 40), Tree("b" * 40)
        parents, existing = split_chain([a, b], ["x", "y"])
        assert parents == [a, b]
        assert existing is None

    def test_root(self):
        a = Tree("a" * 40)
        assert split_chain([a], []) == ([], a)


class TestRebuildTree:
    def test_structural_sharing(self, gateway, commit_files, tree_at):
        """Rebuilding a/b/c must not change sibling subtree a/d."""
        commit = commit_files({"a/b/c/old.txt": b"old", "a/d/keep.txt": b"keep", "top.txt": b"t"})
        root = root_of(gateway, commit)
        chain = asyncio.run(resolve_path(gateway, TreeCache(), root, ["a", "b", "c"]))
        leaf = asyncio.run(gateway.create_tree(
            [TreeEntry.blob("new.txt", asyncio.run(gateway.create_blob(b"new")))]
        ))
        new_root = asyncio.run(rebuild_tree(gateway, chain[:-1] + [leaf], ["a", "b", "c"]))

        old_a = asyncio.run(gateway.get_tree(root.entry("a").sha))
        new_a = asyncio.run(gateway.get_tree(new_root.entry("a").sha))
        assert new_a.entry("d") == old_a.entry("d")
        assert new_a.entry("b") != old_a.entry("b")
        assert new_root.entry("top.txt") == root.entry("top.txt")
        assert new_root.sha != root.sha

    def test_unchanged_leaf_gives_same_root(self, gateway, commit_files):
        commit = commit_files({"a/b/f.txt": b"f", "g.txt": b"g"})
        root = root_of(gateway, commit)
        chain = asyncio.run(resolve_path(gateway, TreeCache(), root, ["a", "b"]))
        new_root = asyncio.run(rebuild_tree(gateway, chain, ["a", "b"]))
        assert new_root.sha == root.sha

    def test_creates_missing_directories(self, gateway, commit_files):
        commit = commit_files({"a/f.txt": b"f"})
        root = root_of(gateway, commit)
        chain = asyncio.run(resolve_path(gateway, TreeCache(), root, ["a", "b", "c"]))
        parents, _ = split_chain(chain, ["a", "b", "c"])
        leaf = asyncio.run(gateway.create_tree(
            [TreeEntry.blob("n.txt", asyncio.run(gateway.create_blob(b"n")))]
        ))
        new_root = asyncio.run(rebuild_tree(gateway, parents + [leaf], ["a", "b", "c"]))
        a = asyncio.run(gateway.get_tree(new_root.entry("a").sha))
        assert a.names() == ["b", "f.txt"]
        b = asyncio.run(gateway.get_tree(a.entry("b").sha))
        assert b.names() == ["c"]
        assert b.entry("c").sha == leaf.sha

    def test_replaces_blob_with_tree(self, gateway, commit_files):
        commit = commit_files({"a": b"a file"})
        root = root_of(gateway, commit)
        leaf = asyncio.run(gateway.create_tree([]))
        new_root = asyncio.run(rebuild_tree(gateway, [root, leaf], ["a"]))
        assert new_root.entry("a").is_tree
        assert len(new_root) == 1

    def test_root_only(self, gateway):
        leaf = asyncio.run(gateway.create_tree([]))
        assert asyncio.run(rebuild_tree(gateway, [leaf], [])) is leaf

    def test_does_not_touch_cached_trees(self, gateway, commit_files):
        commit = commit_files({"a/b/f.txt": b"f"})
        root = root_of(gateway, commit)
        cache = TreeCache()
        chain = asyncio.run(resolve_path(gateway, cache, root, ["a", "b"]))
        snapshot = [t.entries for t in chain]
        leaf = asyncio.run(gateway.create_tree([]))
        asyncio.run(rebuild_tree(gateway, chain[:-1] + [leaf], ["a", "b"]))
        assert [t.entries for t in chain] == snapshot
        assert asyncio.run(cache.get_tree(gateway, chain[1].sha)) == chain[1]

    def test_length_mismatch(self, gateway):
        with pytest.raises(ValueError):
            asyncio.run(rebuild_tree(gateway, [EMPTY_TREE], ["a"]))
