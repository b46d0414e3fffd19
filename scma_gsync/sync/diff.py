"""Key based diff of desired records against remote state."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")
W = TypeVar("W")


@dataclass
class SyncOps(Generic[V, W]):
    """
    The changeset needed to turn the remote side into the desired side.

    Each bucket is keyed by identity key. A key appears in at most one bucket.
    """

    inserts: dict[str, V] = field(default_factory=dict)
    updates: dict[str, tuple[V, W]] = field(default_factory=dict)
    deletes: dict[str, W] = field(default_factory=dict)

    def without(self, keys: Iterable[str]) -> "SyncOps[V, W]":
        """Drop pinned keys from inserts and deletes."""
        pinned = set(keys)
        return SyncOps(
            inserts={k: v for k, v in self.inserts.items() if k not in pinned},
            updates=dict(self.updates),
            deletes={k: w for k, w in self.deletes.items() if k not in pinned},
        )

    def counts(self) -> str:
        return (
            f"inserts={len(self.inserts)}, updates={len(self.updates)}, "
            f"deletes={len(self.deletes)}"
        )


def diff(
    desired: Iterable[V],
    actual: Iterable[W],
    desired_key: Callable[[V], str],
    actual_key: Callable[[W], Optional[str]],
) -> SyncOps[V, W]:
    """
    Classify records as insert, update or delete by identity key.

    Remote records without a key are left out of the diff entirely: they are
    never matched and never deleted. When a key repeats on one side, the last
    record wins. Buckets are ordered by key.
    """
    desired_by_key: dict[str, V] = {}
    for record in desired:
        desired_by_key[desired_key(record)] = record

    actual_by_key: dict[str, W] = {}
    skipped = 0
    for record in actual:
        key = actual_key(record)
        if not key:
            skipped += 1
            continue
        actual_by_key[key] = record

    if skipped:
        logger.debug(f"Ignoring {skipped} remote record(s) without an identity key")

    desired_keys = set(desired_by_key)
    actual_keys = set(actual_by_key)

    return SyncOps(
        inserts={k: desired_by_key[k] for k in sorted(desired_keys - actual_keys)},
        updates={
            k: (desired_by_key[k], actual_by_key[k])
            for k in sorted(desired_keys & actual_keys)
        },
        deletes={k: actual_by_key[k] for k in sorted(actual_keys - desired_keys)},
    )
