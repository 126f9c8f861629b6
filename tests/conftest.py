"""Shared fixtures for treesync tests."""

import asyncio
import inspect

import pytest
from click.testing import CliRunner

from treesync import DulwichGateway, SyncOptions, TreeCache, TreeEntry, resolve_path
from treesync.objects import branch_ref
from treesync.tree import split_path


async def _write_tree(gateway, files):
    """Create a (possibly nested) tree from {path: bytes}."""
    subdirs = {}
    entries = []
    for path, data in files.items():
        head, _, rest = path.partition("/")
        if rest:
            subdirs.setdefault(head, {})[rest] = data
        else:
            entries.append(TreeEntry.blob(head, await gateway.create_blob(data)))
    for name, sub in subdirs.items():
        tree = await _write_tree(gateway, sub)
        entries.append(TreeEntry.tree(name, tree.sha))
    return await gateway.create_tree(entries)


async def _commit_files(gateway, files, branch):
    ref = await gateway.get_reference(branch_ref(branch))
    tree = await _write_tree(gateway, files)
    commit = await gateway.create_commit("seed", tree.sha, [ref.sha])
    await gateway.update_reference(branch_ref(branch), commit.sha)
    return commit


async def _tree_at(gateway, path, branch):
    """Return the tree at *path* on *branch*, or None."""
    parts = split_path(path)
    ref = await gateway.get_reference(branch_ref(branch))
    commit = await gateway.get_commit(ref.sha)
    root = await gateway.get_tree(commit.tree)
    chain = await resolve_path(gateway, TreeCache(), root, parts)
    if len(chain) != len(parts) + 1:
        return None
    return chain[-1]


@pytest.fixture
def gateway():
    """An in-memory store with an empty commit on 'master'."""
    return DulwichGateway.init(branch="master")


@pytest.fixture
def commit_files(gateway):
    """Replace the tree of a branch with {path: bytes}; returns the commit."""
    def _commit(files, branch="master"):
        return asyncio.run(_commit_files(gateway, files, branch))
    return _commit


@pytest.fixture
def tree_at(gateway):
    """Look up the tree at a path of a branch (None when missing)."""
    def _lookup(path, branch="master"):
        return asyncio.run(_tree_at(gateway, path, branch))
    return _lookup


@pytest.fixture
def head(gateway):
    """Return the commit sha a branch points at."""
    def _head(branch="master"):
        return asyncio.run(gateway.get_reference(branch_ref(branch))).sha
    return _head


@pytest.fixture
def local_dir(tmp_path):
    """A flat local directory with a.txt and b.txt."""
    d = tmp_path / "local"
    d.mkdir()
    (d / "a.txt").write_text("1")
    (d / "b.txt").write_text("2")
    return d


@pytest.fixture
def make_options(local_dir):
    """Build SyncOptions targeting site/assets, overridable per test."""
    def _make(**kwargs):
        defaults = dict(
            user="acme", repo="site",
            local_path=str(local_dir), repo_path="site/assets",
            message="Sync assets",
        )
        defaults.update(kwargs)
        return SyncOptions(**defaults)
    return _make


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_path(tmp_path):
    """Return a path to a not-yet-created store."""
    return str(tmp_path / "store.git")


class RecordingGateway:
    """Wrap a gateway and record the name of every store call."""

    def __init__(self, inner):
        self._inner = inner
        self.calls = []

    def __getattr__(self, name):
        attr = getattr(self._inner, name)
        if not inspect.iscoroutinefunction(attr):
            return attr

        async def call(*args, **kwargs):
            self.calls.append(name)
            return await attr(*args, **kwargs)
        return call

    def count(self, name):
        return self.calls.count(name)


@pytest.fixture
def recording(gateway):
    return RecordingGateway(gateway)
