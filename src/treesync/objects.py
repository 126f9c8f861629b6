"""Immutable value records for the git object model.

Trees are never mutated in place.  Operations that "change" a tree
return a new tuple of entries which is then submitted to the store as a
new tree, so a tree fetched once may safely be shared between every
place that references its hash.
"""

from __future__ import annotations

from dataclasses import dataclass, field

GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644
GIT_FILEMODE_BLOB_EXECUTABLE = 0o100755
GIT_FILEMODE_LINK = 0o120000
GIT_FILEMODE_COMMIT = 0o160000

OBJECT_BLOB = "blob"
OBJECT_TREE = "tree"
OBJECT_COMMIT = "commit"

EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


def object_type_for_mode(mode: int) -> str:
    """Return the object type a tree entry with *mode* points to."""
    if mode == GIT_FILEMODE_TREE:
        return OBJECT_TREE
    if mode == GIT_FILEMODE_COMMIT:
        return OBJECT_COMMIT
    return OBJECT_BLOB


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A single named entry of a tree.

    Attributes:
        path: One path segment, unique within its tree.
        mode: Git filemode (e.g. ``0o100644``, ``0o040000``).
        type: ``"blob"``, ``"tree"`` or ``"commit"``.
        sha: 40-char hex SHA of the referenced object.
    """

    path: str
    mode: int
    type: str
    sha: str

    @classmethod
    def blob(cls, path: str, sha: str, mode: int = GIT_FILEMODE_BLOB) -> TreeEntry:
        return cls(path, mode, OBJECT_BLOB, sha)

    @classmethod
    def tree(cls, path: str, sha: str) -> TreeEntry:
        return cls(path, GIT_FILEMODE_TREE, OBJECT_TREE, sha)

    @property
    def is_tree(self) -> bool:
        return self.type == OBJECT_TREE


@dataclass(frozen=True, slots=True)
class Tree:
    """A content-addressed directory listing.

    Entry order is irrelevant: the store hashes the entry *set*.
    """

    sha: str
    entries: tuple[TreeEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def names(self) -> list[str]:
        return sorted(e.path for e in self.entries)

    def entry(self, name: str) -> TreeEntry | None:
        """Return the entry called *name*, or None."""
        for e in self.entries:
            if e.path == name:
                return e
        return None

    def subtree_entry(self, name: str) -> TreeEntry | None:
        """Return the entry called *name* only if it is a tree."""
        e = self.entry(name)
        if e is not None and e.is_tree:
            return e
        return None

    def replace(self, new: TreeEntry) -> tuple[TreeEntry, ...]:
        """Return this tree's entries with *new* replacing any same-named entry."""
        kept = tuple(e for e in self.entries if e.path != new.path)
        return kept + (new,)


EMPTY_TREE = Tree(EMPTY_TREE_SHA, ())


@dataclass(frozen=True, slots=True)
class Commit:
    """A commit: one root tree, its parents, and a message."""

    sha: str
    tree: str
    parents: tuple[str, ...] = ()
    message: str = ""


@dataclass(frozen=True, slots=True)
class Reference:
    """A branch reference (``heads/<name>``) and the commit it points at."""

    ref: str
    sha: str

    @property
    def branch(self) -> str:
        return self.ref.removeprefix("heads/")


@dataclass(frozen=True, slots=True)
class PullRequest:
    """A merge request from *head* into *base*."""

    title: str
    body: str
    base: str
    head: str
    url: str | None = None
    number: int | None = field(default=None, compare=False)


def branch_ref(branch: str) -> str:
    """Return the logical reference name for *branch*."""
    return f"heads/{branch}"
