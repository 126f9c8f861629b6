"""Tree walking and bottom-up tree rebuild.

Only the ancestor chain from the changed leaf to the root is rebuilt.
Sibling subtrees are shared by hash reference.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .exceptions import PathNotFoundError
from .objects import EMPTY_TREE, Tree, TreeEntry

if TYPE_CHECKING:
    from .gateway import ObjectStoreGateway


def _is_root_path(path: str | os.PathLike[str]) -> bool:
    """Return True if path represents the root (empty or only slashes)."""
    p = os.fspath(path)
    if os.name == "nt":
        p = p.replace("\\", "/")
    return p.strip("/") == ""


def split_path(path: str | os.PathLike[str]) -> list[str]:
    """Split a repo path into segments, dropping empty ones.

    ``"/site//assets/"`` -> ``["site", "assets"]``; the root is ``[]``.
    Raises ValueError for ``.`` or ``..`` segments.
    """
    path = os.fspath(path)
    if os.name == "nt":
        path = path.replace("\\", "/")
    segments = [seg for seg in path.split("/") if seg]
    for seg in segments:
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return segments


class TreeCache:
    """Trees fetched during one sync, keyed by hash.

    Trees are immutable values, so a cached tree can be handed out to any
    number of callers; rebuilding produces new entry tuples and never
    touches the cached original.
    """

    def __init__(self) -> None:
        self._trees: dict[str, Tree] = {}

    def __len__(self) -> int:
        return len(self._trees)

    def __contains__(self, sha: str) -> bool:
        return sha in self._trees

    def add(self, tree: Tree) -> None:
        self._trees[tree.sha] = tree

    async def get_tree(self, gateway: ObjectStoreGateway, sha: str) -> Tree:
        """Return the tree *sha* from the cache, fetching it on a miss."""
        tree = self._trees.get(sha)
        if tree is None:
            tree = await gateway.get_tree(sha)
            self.add(tree)
        return tree


async def resolve_path(
    gateway: ObjectStoreGateway,
    cache: TreeCache,
    root: Tree,
    parts: list[str],
    *,
    strict: bool = False,
) -> list[Tree]:
    """Return the chain ``[root, child1, ...]`` of trees existing along *parts*.

    The chain stops at the first segment that is missing (or is not a
    tree), so its length is between 1 and ``len(parts) + 1``.  With
    *strict*, every segment but the last must exist; a missing one raises
    :class:`PathNotFoundError`.
    """
    cache.add(root)
    chain = [root]
    tree = root
    for depth, name in enumerate(parts):
        entry = tree.subtree_entry(name)
        if entry is None:
            if strict and depth < len(parts) - 1:
                raise PathNotFoundError(
                    f"Path not found in tree: {'/'.join(parts[: depth + 1])}"
                )
            break
        tree = await cache.get_tree(gateway, entry.sha)
        chain.append(tree)
    return chain


def split_chain(chain: list[Tree], parts: list[str]) -> tuple[list[Tree], Tree | None]:
    """Separate a resolved chain into the parents of the target and the target.

    Returns ``(parents, existing)`` where *parents* has exactly one tree
    per segment of *parts* (missing intermediate directories are filled
    with the empty tree) and *existing* is the tree currently at the full
    path, or None.
    """
    if len(chain) == len(parts) + 1:
        return list(chain[:-1]), chain[-1]
    missing = len(parts) - len(chain)
    return list(chain) + [EMPTY_TREE] * missing, None


async def rebuild_tree(
    gateway: ObjectStoreGateway,
    trees_for_path: list[Tree],
    path_parts: list[str],
) -> Tree:
    """Fold the new leaf (last element of *trees_for_path*) back up to a new root.

    Args:
        gateway: Store used to create the rebuilt trees.
        trees_for_path: Ancestor chain from the root, with the new leaf
            appended as the last element.
        path_parts: One segment per level below the root.

    Returns:
        The new root tree.  Equal to the old root (same sha) when the leaf
        is unchanged.
    """
    if len(trees_for_path) != len(path_parts) + 1:
        raise ValueError(
            f"Expected {len(path_parts) + 1} trees for {len(path_parts)} path parts, "
            f"got {len(trees_for_path)}"
        )
    trees = list(trees_for_path)
    parts = list(path_parts)
    child = trees.pop()
    while parts:
        name = parts.pop()
        parent = trees.pop()
        child = await gateway.create_tree(parent.replace(TreeEntry.tree(name, child.sha)))
    return child
