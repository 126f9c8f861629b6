"""Typed, validated options for one sync."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import ConfigurationError
from .refs import _validate_ref_name
from .tree import split_path

if TYPE_CHECKING:
    from .gateway import ObjectStoreGateway

_REQUIRED = (
    ("user", "owner of the repository"),
    ("repo", "repository name"),
    ("local_path", "local path to sync from"),
    ("repo_path", "path within the repository to sync to"),
    ("message", "commit message"),
)


@dataclass(frozen=True)
class SyncOptions:
    """Everything one sync needs to know.

    Attributes:
        user: Owner of the target repository.
        repo: Name of the target repository.
        local_path: Flat local directory whose files are synced.
        repo_path: Slash-separated target path in the repository
            (``"/"`` for the root).
        message: Commit message; its first line titles the pull request.
        branch: Branch to sync to.
        base_branch: Branch to create *branch* from, and pull-request base.
        create_branch: Create *branch* from *base_branch* if it is missing.
        create_pull_request: Open a pull request from *branch* into
            *base_branch* after syncing.
        preserve_repo_files: Keep repository files that do not exist
            locally (additive sync) instead of replacing the directory.
        require_parent: Fail if the parent of *repo_path* does not exist,
            instead of creating missing directories.
        oauth_token: Token for the default GitHub gateway.
        gateway: Pre-built gateway; overrides *oauth_token*.
        debug: Emit DEBUG trace records for every checkpoint and store call.
        logger: Logger receiving trace records (default ``treesync``).
    """

    user: str
    repo: str
    local_path: str
    repo_path: str
    message: str
    branch: str = "master"
    base_branch: str = "master"
    create_branch: bool = False
    create_pull_request: bool = False
    preserve_repo_files: bool = False
    require_parent: bool = False
    oauth_token: str | None = field(default=None, repr=False)
    gateway: ObjectStoreGateway | None = field(default=None, repr=False, compare=False)
    debug: bool = False
    logger: logging.Logger | None = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        for name, label in _REQUIRED:
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ConfigurationError(f"Must pass {label} in `{name}`")
        for name in ("branch", "base_branch"):
            try:
                _validate_ref_name(getattr(self, name))
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from None
        try:
            split_path(self.repo_path)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid `repo_path`: {exc}") from None
        if self.branch == self.base_branch:
            if self.create_branch:
                raise ConfigurationError(
                    f"`create_branch` needs a `base_branch` different from `branch` ({self.branch!r})"
                )
            if self.create_pull_request:
                raise ConfigurationError(
                    f"Pull request base `base_branch` must differ from `branch` ({self.branch!r})"
                )

    @property
    def path_parts(self) -> list[str]:
        return split_path(self.repo_path)
