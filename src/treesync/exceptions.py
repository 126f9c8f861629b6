"""Exceptions for treesync."""


class TreeSyncError(Exception):
    """Base class for every error raised by treesync."""


class ConfigurationError(TreeSyncError):
    """Raised when sync options are missing or contradictory.

    Always raised before any call to the object store is made.
    """


class NotFoundError(TreeSyncError):
    """Raised when a reference or path segment does not exist in the store."""


class BranchNotFoundError(NotFoundError):
    """Raised when the target branch is absent and may not be created."""


class PathNotFoundError(NotFoundError):
    """Raised by the strict resolver when an intermediate directory is missing."""


class StoreError(TreeSyncError):
    """Raised for any other failure reported by the object store.

    ``status`` is the HTTP-like status code when the store reports one,
    ``data`` the raw error payload.
    """

    def __init__(self, message: str, *, status: int | None = None, data=None):
        super().__init__(message)
        self.status = status
        self.data = data


class StaleBranchError(StoreError):
    """Raised when a branch advanced between reading it and updating it.

    Re-run the sync, or use :func:`~treesync.retry_sync` for automatic
    retry with backoff.
    """


class DuplicateRequestError(TreeSyncError):
    """Raised when an equivalent pull request is already open."""
