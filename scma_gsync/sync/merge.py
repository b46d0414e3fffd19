"""
Tagged sub-field merging.

Remote update calls overwrite every field named in the update mask, so an
update has to start from the remote entity and only rewrite the entries this
tool owns. Owned entries are found by a discriminator: the ``type`` of a phone
number or address, or the ``key`` of a user-defined attribute. Every other
entry is foreign and is carried over untouched, in order.
"""

import logging
from typing import Iterable, Optional

from scma_gsync.errors import MergeInvariantViolation

logger = logging.getLogger(__name__)


class TaggedEntries:
    """
    A sub-field list viewed as an ordered map keyed by discriminator.

    Slots are keyed by (discriminator, occurrence) so repeated foreign
    discriminators are kept apart.
    """

    def __init__(self, entries: Optional[list[dict]], tag_field: str):
        self.tag_field = tag_field
        self._slots: dict[tuple, dict] = {}

        occurrences: dict = {}
        for entry in entries or []:
            tag = entry.get(tag_field)
            occurrence = occurrences.get(tag, 0)
            occurrences[tag] = occurrence + 1
            self._slots[(tag, occurrence)] = entry

    def upsert(self, entry: dict) -> None:
        """Replace the entry with the same discriminator in place, or append it."""
        tag = entry.get(self.tag_field)

        # Later copies of an owned entry are stale duplicates
        for slot in [s for s in self._slots if s[0] == tag and s[1] > 0]:
            del self._slots[slot]

        self._slots[(tag, 0)] = entry

    def to_list(self) -> list[dict]:
        return list(self._slots.values())


def upsert_tagged(
    entries: Optional[list[dict]],
    new_entry: Optional[dict],
    tag_field: str = "type",
) -> Optional[list[dict]]:
    """
    Upsert one tagged entry into a sub-field list.

    A None new_entry means the source has nothing for this category, in which
    case the existing list is returned as is.
    """
    if new_entry is None:
        return entries

    tagged = TaggedEntries(entries, tag_field)
    tagged.upsert(new_entry)
    return tagged.to_list()


def upsert_keyed(
    entries: Optional[list[dict]],
    values: dict[str, str],
    key_field: str = "key",
    value_field: str = "value",
) -> list[dict]:
    """Upsert key/value attributes, in the order given by values."""
    tagged = TaggedEntries(entries, key_field)
    for key, value in values.items():
        tagged.upsert({key_field: key, value_field: value})
    return tagged.to_list()


def foreign_entries(
    entries: Optional[list[dict]],
    tag_field: str,
    owned: Iterable[str],
) -> list[dict]:
    owned = set(owned)
    return [entry for entry in entries or [] if entry.get(tag_field) not in owned]


def check_foreign_preserved(
    category: str,
    before: Optional[list[dict]],
    after: Optional[list[dict]],
    tag_field: str,
    owned: Iterable[str],
) -> None:
    """Raise MergeInvariantViolation if a foreign entry was dropped, changed or moved."""
    owned = set(owned)
    if foreign_entries(before, tag_field, owned) != foreign_entries(after, tag_field, owned):
        raise MergeInvariantViolation(
            f"Merge of {category} would modify entries not tagged {sorted(owned)}"
        )
