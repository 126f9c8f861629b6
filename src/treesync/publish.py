"""Commit publication and pull-request creation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ._trace import trace
from .exceptions import DuplicateRequestError
from .objects import Commit, PullRequest, Tree, branch_ref

if TYPE_CHECKING:
    from .gateway import ObjectStoreGateway

logger = logging.getLogger(__name__)


async def publish_commit(
    gateway: ObjectStoreGateway,
    branch: str,
    latest: Commit,
    new_root: Tree,
    message: str,
    *,
    log: logging.Logger | None = None,
) -> Commit | None:
    """Commit *new_root* on top of *latest* and advance *branch* to it.

    Returns None without touching the store when *new_root* is the tree
    *latest* already points at.  The commit is created before the branch
    moves, so the branch only ever points at complete commits; a failure
    in between leaves an unreferenced commit behind, which is harmless.
    """
    log = log or logger
    if new_root.sha == latest.tree:
        trace(log, "noop_detected", logging.INFO, branch=branch, tree=new_root.sha)
        return None

    commit = await gateway.create_commit(message, new_root.sha, [latest.sha])
    await gateway.update_reference(branch_ref(branch), commit.sha, old_sha=latest.sha)
    trace(log, "commit_published", logging.INFO, branch=branch, sha=commit.sha, tree=new_root.sha)
    return commit


def split_message(message: str) -> tuple[str, str]:
    """Split a commit message into (title, body).

    The title is the first line.  The body is the rest with surrounding
    blank lines stripped, following git's convention that a blank line
    separates the subject from the body; interior blank lines are kept.
    """
    lines = message.split("\n")
    return lines[0], "\n".join(lines[1:]).strip("\n")


async def create_pull_request(
    gateway: ObjectStoreGateway,
    branch: str,
    base_branch: str,
    message: str,
    *,
    log: logging.Logger | None = None,
) -> PullRequest | None:
    """Open a pull request from *branch* into *base_branch*.

    The title is the first line of *message*, the body the rest.  An
    already-open pull request counts as success and returns None.
    """
    log = log or logger
    title, body = split_message(message)
    try:
        pr = await gateway.create_pull_request(title, body, base_branch, branch)
    except DuplicateRequestError as exc:
        trace(log, "pull_request_exists", logging.INFO, head=branch, base=base_branch, detail=exc)
        return None
    trace(log, "pull_request_created", logging.INFO, head=branch, base=base_branch, url=pr.url)
    return pr
