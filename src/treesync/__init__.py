from .exceptions import (
    TreeSyncError, ConfigurationError, NotFoundError, BranchNotFoundError,
    PathNotFoundError, StoreError, StaleBranchError, DuplicateRequestError,
)
from .objects import Tree, TreeEntry, Commit, Reference, PullRequest, EMPTY_TREE
from .gateway import ObjectStoreGateway, DulwichGateway, GitHubGateway, open_gateway
from .options import SyncOptions
from .tree import TreeCache, resolve_path, rebuild_tree, split_path
from .snapshot import build_dir_tree
from .refs import get_branch_or_none, resolve_branch
from .publish import publish_commit, create_pull_request
from .sync import SyncResult, sync_to_repo, retry_sync, run_sync

__all__ = [
    "TreeSyncError", "ConfigurationError", "NotFoundError", "BranchNotFoundError",
    "PathNotFoundError", "StoreError", "StaleBranchError", "DuplicateRequestError",
    "Tree", "TreeEntry", "Commit", "Reference", "PullRequest", "EMPTY_TREE",
    "ObjectStoreGateway", "DulwichGateway", "GitHubGateway", "open_gateway",
    "SyncOptions",
    "TreeCache", "resolve_path", "rebuild_tree", "split_path",
    "build_dir_tree",
    "get_branch_or_none", "resolve_branch",
    "publish_commit", "create_pull_request",
    "SyncResult", "sync_to_repo", "retry_sync", "run_sync",
]
