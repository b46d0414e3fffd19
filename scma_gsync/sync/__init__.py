"""Sync engine module."""

from scma_gsync.sync.calendar import CalendarSync
from scma_gsync.sync.contacts import ContactsSync
from scma_gsync.sync.diff import SyncOps, diff
from scma_gsync.sync.executor import SyncReport, WriteOp, apply_ops

__all__ = [
    "CalendarSync",
    "ContactsSync",
    "SyncOps",
    "SyncReport",
    "WriteOp",
    "apply_ops",
    "diff",
]
