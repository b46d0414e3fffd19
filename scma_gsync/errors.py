"""Sync error types."""

from typing import Optional


class SyncError(Exception):
    """Base class for all sync errors."""


class ScrapeError(SyncError):
    """The source records could not be obtained."""


class AuthError(SyncError):
    """The credential could not be loaded, refreshed or authorized."""


class TargetNotFoundError(SyncError):
    """The named calendar or contact group does not exist and cannot be created."""


class RemoteListError(SyncError):
    """Listing a remote collection failed. Pages fetched so far are discarded."""

    def __init__(self, collection: str, cause: Optional[BaseException] = None):
        self.collection = collection
        self.cause = cause
        message = f"Failed to list {collection}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class RemoteWriteError(SyncError):
    """A single insert, update or delete failed."""

    def __init__(self, action: str, key: str, cause: Optional[BaseException] = None):
        self.action = action
        self.key = key
        self.cause = cause
        message = f"Failed to {action} {key}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class MergeInvariantViolation(SyncError):
    """A merge would have dropped or rewritten a sub-field this tool does not own."""
