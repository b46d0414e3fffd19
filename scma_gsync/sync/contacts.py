"""
Google Contacts sync.

Synchronizes SCMA members with a Google Contacts group:

1. Find the contact group by name (contactGroups.list), creating it if needed.
2. Get the member resource names of the group (contactGroups.get).
3. Get the member details in batches (people.getBatchGet).
4. Diff members with people by email.
5. Sync:

   * Insert with people.batchCreateContacts, as members of the group.

     Pre-existing contacts outside the group are not considered and will be
     added again. The Google Contacts "Merge & fix" feature can reconcile
     the duplicates this may create.

   * Update with people.batchUpdateContacts, after merging the member into
     the existing contact (see merge_person).

   * Delete: nothing is done. People in the group that are no longer SCMA
     members are only logged and left for manual review.
"""

import asyncio
import logging
from functools import partial
from typing import Iterable, Optional

from scma_gsync.config import Settings, get_settings
from scma_gsync.errors import MergeInvariantViolation, RemoteWriteError, TargetNotFoundError
from scma_gsync.models import User
from scma_gsync.sync.diff import diff
from scma_gsync.sync.executor import INSERT, UPDATE, SyncReport, WriteOp, apply_ops, chunked
from scma_gsync.sync.google_people import (
    PEOPLE_BATCH_CREATE_MAX_CONTACTS,
    PEOPLE_BATCH_UPDATE_MAX_CONTACTS,
    GooglePeopleClient,
    create_person,
    merge_person,
    person_email,
    person_name_email,
)

logger = logging.getLogger(__name__)


class ContactsSync:
    """Syncs SCMA members to a Google Contacts group."""

    def __init__(
        self,
        client: GooglePeopleClient,
        group_resource_name: str,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        # The unique identifier of the contact group assigned by the People API
        self.group_resource_name = group_resource_name
        self.settings = settings or get_settings()

    @classmethod
    async def open(
        cls,
        client: GooglePeopleClient,
        group_name: str,
        dry_run: bool = False,
        settings: Optional[Settings] = None,
    ) -> "ContactsSync":
        """Find the named contact group, creating it if needed."""
        logger.info(f"Finding contact group {group_name}")
        group = await asyncio.to_thread(client.find_contact_group, group_name)

        if group is None:
            if dry_run:
                raise TargetNotFoundError(
                    f"Contact group '{group_name}' not found, it cannot be created during a dry run"
                )

            logger.info(f"Contact group {group_name} not found, creating new contact group")
            try:
                group = await asyncio.to_thread(client.create_contact_group, group_name)
            except Exception as e:
                raise RemoteWriteError(INSERT, f"contact group {group_name}", e) from e
            logger.info(f"Created contact group {group['resourceName']}")
        else:
            logger.info(f"Found existing contact group {group['resourceName']}")

        return cls(client, group["resourceName"], settings)

    async def _list_members(self) -> list[dict]:
        logger.info("Getting group member resource names")
        resource_names = await asyncio.to_thread(
            self.client.get_member_resource_names, self.group_resource_name
        )
        logger.info(f"Got {len(resource_names)} group member resource names")

        if not resource_names:
            return []

        logger.info("Getting group member details")
        people = await asyncio.to_thread(self.client.batch_get_people, resource_names)
        logger.info(f"Got {len(people)} group member details")
        return people

    def _merge(self, updates: dict[str, tuple[User, dict]]) -> list[dict]:
        merged = []
        for email, (user, person) in updates.items():
            try:
                merged.append(merge_person(user, person))
            except MergeInvariantViolation as e:
                if self.settings.strict_merge:
                    raise
                logger.error(f"Skipping update of {email}: {e}")
        return merged

    async def sync_contacts(self, users: Iterable[User], dry_run: bool = False) -> SyncReport:
        report = SyncReport("contacts")
        users = list(users)

        people = await self._list_members()

        logger.info(f"Determining sync operations for {len(users)} users")
        ops = diff(users, people, lambda user: user.email, person_email)
        logger.info(f"Determined contact sync operations: {ops.counts()}")

        new_people = [
            create_person(user, self.group_resource_name) for user in ops.inserts.values()
        ]
        insert_ops = [
            WriteOp(
                action=INSERT,
                key=", ".join(person_name_email(person) for person in chunk),
                call=partial(self.client.batch_create_contacts, list(chunk)),
                body=list(chunk),
                count=len(chunk),
            )
            for chunk in chunked(new_people, PEOPLE_BATCH_CREATE_MAX_CONTACTS)
        ]

        logger.info(f"Adding {len(new_people)} people")
        # Batch creates already combine many contacts, run them one at a time
        await apply_ops(insert_ops, report, 1, dry_run)

        updated_people = self._merge(ops.updates)
        update_ops = [
            WriteOp(
                action=UPDATE,
                key=", ".join(person_name_email(person) for person in chunk),
                call=partial(self.client.batch_update_contacts, list(chunk)),
                body=list(chunk),
                count=len(chunk),
            )
            for chunk in chunked(updated_people, PEOPLE_BATCH_UPDATE_MAX_CONTACTS)
        ]

        logger.info(f"Updating {len(updated_people)} people")
        await apply_ops(update_ops, report, self.settings.contacts_concurrency, dry_run)

        ignores = [person_name_email(person) for person in ops.deletes.values()]
        logger.info(
            f"Ignoring {len(ignores)} people found in Google Contacts but not a current "
            f"member of the SCMA: {ignores}"
        )

        return report
