"""Sync a flat local directory to a path in a remote tree store.

The pipeline runs strictly in order: resolve the branch, resolve the
target path, build the new leaf tree, rebuild the ancestors up to a new
root, publish a commit, open a pull request.  The first failing step
aborts the rest; objects already written are unreferenced and harmless.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
from dataclasses import dataclass

from ._trace import debug_logging, get_logger, trace
from .exceptions import ConfigurationError, StaleBranchError
from .gateway import ObjectStoreGateway, open_gateway
from .objects import PullRequest
from .options import SyncOptions
from .publish import create_pull_request, publish_commit
from .refs import resolve_branch
from .snapshot import build_dir_tree
from .tree import TreeCache, rebuild_tree, resolve_path, split_chain


@dataclass
class SyncResult:
    """Outcome of one sync.

    ``commit_sha`` is the branch head after the sync: the new commit, or
    the untouched head when nothing changed.
    """

    branch: str
    changed: bool
    commit_sha: str
    tree_sha: str
    previous_tree_sha: str
    branch_created: bool = False
    pull_request: PullRequest | None = None


async def sync_to_repo(
    options: SyncOptions, *, gateway: ObjectStoreGateway | None = None,
) -> SyncResult:
    """Make ``options.repo_path`` on ``options.branch`` match ``options.local_path``.

    With ``options.debug`` the logger is lowered to DEBUG for this call only.
    """
    if not os.path.isdir(options.local_path):
        raise ConfigurationError(f"Local path is not a directory: {options.local_path}")
    if gateway is None:
        gateway = open_gateway(options)
    with debug_logging(get_logger(options.logger), options.debug) as log:
        return await _run_pipeline(options, gateway, log)


async def _run_pipeline(
    options: SyncOptions, gateway: ObjectStoreGateway, log: logging.Logger,
) -> SyncResult:
    parts = options.path_parts
    trace(log, "sync_started", user=options.user, repo=options.repo,
          branch=options.branch, path="/".join(parts) or "/")

    ref, created = await resolve_branch(
        gateway, options.branch,
        base_branch=options.base_branch, create=options.create_branch, log=log,
    )
    latest = await gateway.get_commit(ref.sha)

    cache = TreeCache()
    root = await cache.get_tree(gateway, latest.tree)
    chain = await resolve_path(gateway, cache, root, parts, strict=options.require_parent)
    parents, existing = split_chain(chain, parts)
    trace(log, "path_resolved", depth=len(chain) - 1, of=len(parts), exists=existing is not None)

    leaf = await build_dir_tree(
        gateway, options.local_path,
        existing=existing, preserve=options.preserve_repo_files, log=log,
    )
    new_root = await rebuild_tree(gateway, parents + [leaf], parts)
    trace(log, "tree_computed", leaf=leaf.sha, root=new_root.sha, previous=root.sha)

    commit = await publish_commit(gateway, options.branch, latest, new_root, options.message, log=log)

    pr = None
    if options.create_pull_request:
        if commit is None and created:
            trace(log, "pull_request_skipped", branch=options.branch,
                  reason="new branch has no changes")
        else:
            pr = await create_pull_request(
                gateway, options.branch, options.base_branch, options.message, log=log,
            )

    return SyncResult(
        branch=options.branch,
        changed=commit is not None,
        commit_sha=commit.sha if commit is not None else latest.sha,
        tree_sha=new_root.sha,
        previous_tree_sha=root.sha,
        branch_created=created,
        pull_request=pr,
    )


async def retry_sync(
    options: SyncOptions,
    *,
    gateway: ObjectStoreGateway | None = None,
    retries: int = 5,
) -> SyncResult:
    """Run :func:`sync_to_repo`, retrying when the branch moves underneath.

    Uses exponential backoff with jitter (base 10ms, factor 2x, cap 200ms).
    Raises ``StaleBranchError`` if all attempts are exhausted.
    """
    if retries < 1:
        raise ValueError("retries must be at least 1")
    if gateway is None:
        gateway = open_gateway(options)
    for attempt in range(retries):
        try:
            return await sync_to_repo(options, gateway=gateway)
        except StaleBranchError:
            if attempt == retries - 1:
                raise
            delay = min(0.01 * (2 ** attempt), 0.2)
            await asyncio.sleep(random.uniform(0, delay))


def run_sync(
    options: SyncOptions,
    *,
    gateway: ObjectStoreGateway | None = None,
    retries: int = 1,
) -> SyncResult:
    """Blocking wrapper around :func:`retry_sync` for synchronous callers."""
    return asyncio.run(retry_sync(options, gateway=gateway, retries=retries))
