"""Object-store gateways.

A gateway performs the primitive content-addressed operations the sync
pipeline needs.  Two implementations ship with treesync:

* :class:`GitHubGateway` talks to the GitHub git data API through PyGithub.
* :class:`DulwichGateway` writes to a local bare (or in-memory) git
  repository through dulwich.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..objects import Commit, PullRequest, Reference, Tree, TreeEntry
from ._dulwich import DulwichGateway
from ._github import GitHubGateway

if TYPE_CHECKING:
    from ..options import SyncOptions


@runtime_checkable
class ObjectStoreGateway(Protocol):
    """Asynchronous request/response contract of a content-addressed store."""

    async def get_reference(self, ref: str) -> Reference: ...

    async def create_reference(self, ref: str, sha: str) -> Reference: ...

    async def update_reference(self, ref: str, sha: str, *, old_sha: str | None = None) -> Reference: ...

    async def get_commit(self, sha: str) -> Commit: ...

    async def create_commit(self, message: str, tree: str, parents: list[str]) -> Commit: ...

    async def get_tree(self, sha: str) -> Tree: ...

    async def create_tree(self, entries: Iterable[TreeEntry]) -> Tree: ...

    async def create_blob(self, content: bytes) -> str: ...

    async def create_pull_request(self, title: str, body: str, base: str, head: str) -> PullRequest: ...


def open_gateway(options: SyncOptions, *, store_path: str | None = None) -> ObjectStoreGateway:
    """Return the gateway described by *options*.

    A pre-built ``options.gateway`` wins.  Otherwise *store_path* selects a
    local dulwich store, and anything else talks to GitHub with
    ``options.oauth_token``.
    """
    if options.gateway is not None:
        return options.gateway
    if store_path is not None:
        return DulwichGateway.open(store_path, logger=options.logger)
    return GitHubGateway.connect(
        options.user, options.repo, token=options.oauth_token, logger=options.logger,
    )


__all__ = ["ObjectStoreGateway", "DulwichGateway", "GitHubGateway", "open_gateway"]
