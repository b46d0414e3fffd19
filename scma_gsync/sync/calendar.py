"""Calendar event and ACL sync."""

import asyncio
import logging
from functools import partial
from typing import Iterable, Optional

from scma_gsync.config import Settings, get_settings
from scma_gsync.errors import RemoteWriteError, TargetNotFoundError
from scma_gsync.models import Event, normalize_email
from scma_gsync.sync.diff import diff
from scma_gsync.sync.executor import DELETE, INSERT, UPDATE, UPSERT, SyncReport, WriteOp, apply_ops
from scma_gsync.sync.google_calendar import (
    INSERTED,
    UPDATED,
    GoogleCalendarClient,
    acl_rule,
    acl_rule_email,
    acl_rule_id,
    event_to_google,
)

logger = logging.getLogger(__name__)

READER = "reader"
OWNER = "owner"

UPSERT_OUTCOMES = {INSERTED: INSERT, UPDATED: UPDATE}


def apply_aliases(emails: Iterable[str], aliases: Optional[dict[str, str]] = None) -> list[str]:
    """Normalize emails and map them through the alias table, dropping duplicates."""
    aliases = aliases or {}
    resolved: dict[str, None] = {}
    for email in emails:
        email = normalize_email(email)
        if not email:
            continue
        resolved[aliases.get(email, email)] = None
    return list(resolved)


class CalendarSync:
    """Syncs SCMA events and calendar readers to a single Google Calendar."""

    def __init__(
        self,
        client: GoogleCalendarClient,
        calendar_id: str,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.calendar_id = calendar_id
        self.settings = settings or get_settings()

    @classmethod
    async def open(
        cls,
        client: GoogleCalendarClient,
        calendar_name: str,
        dry_run: bool = False,
        settings: Optional[Settings] = None,
    ) -> "CalendarSync":
        """
        Find the named calendar, creating it if needed.

        A missing calendar cannot be created during a dry run, in which case
        TargetNotFoundError is raised.
        """
        settings = settings or get_settings()

        logger.info(f"Finding calendar {calendar_name}")
        calendar = await asyncio.to_thread(client.find_calendar, calendar_name)

        if calendar is None:
            if dry_run:
                raise TargetNotFoundError(
                    f"Calendar '{calendar_name}' not found, it cannot be created during a dry run"
                )

            logger.info(f"Calendar {calendar_name} not found, creating new calendar")
            try:
                calendar = await asyncio.to_thread(
                    client.create_calendar,
                    calendar_name,
                    settings.calendar_description,
                    settings.calendar_time_zone,
                )
            except Exception as e:
                raise RemoteWriteError(INSERT, f"calendar {calendar_name}", e) from e
            logger.info(f"Created calendar {calendar['id']}")
        else:
            logger.info(f"Found calendar {calendar['id']}")

        return cls(client, calendar["id"], settings)

    async def pin_owners(self, owners: Iterable[str], dry_run: bool = False) -> SyncReport:
        """
        Make sure every pinned owner holds the owner role.

        Owners are never notified.
        """
        report = SyncReport("owners")
        owners = apply_aliases(owners)
        if not owners:
            return report

        rules = await asyncio.to_thread(self.client.list_acl, self.calendar_id)
        current = {
            acl_rule_email(rule) for rule in rules if rule.get("role") == OWNER
        }
        missing = [email for email in owners if email not in current]
        logger.info(f"Pinning {len(missing)} of {len(owners)} calendar owners")

        ops = [
            WriteOp(
                action=INSERT,
                key=email,
                call=partial(
                    self.client.insert_acl,
                    self.calendar_id,
                    email,
                    role=OWNER,
                    send_notifications=False,
                ),
                body=acl_rule(email, OWNER),
            )
            for email in missing
        ]
        return await apply_ops(ops, report, self.settings.acl_concurrency, dry_run)

    async def sync_events(self, events: Iterable[Event], dry_run: bool = False) -> SyncReport:
        """
        Upsert every event into the calendar.

        Events are patched by their derived id and inserted when Google does
        not know the id yet, so no listing is needed and reruns are idempotent.
        Events are never deleted.
        """
        report = SyncReport("events")
        ops = []

        for event in events:
            try:
                body = event_to_google(event, self.settings.event_summary_prefix)
            except ValueError as e:
                report.fail(UPSERT, event.id, e)
                continue

            ops.append(
                WriteOp(
                    action=UPSERT,
                    key=f"{body['id']} {event.display}",
                    call=partial(self.client.upsert_event, self.calendar_id, body),
                    body=body,
                    resolve=lambda result: UPSERT_OUTCOMES[result[0]],
                )
            )

        logger.info(f"Syncing {len(ops)} events to calendar {self.calendar_id}")
        return await apply_ops(ops, report, self.settings.event_concurrency, dry_run)

    async def sync_acl(
        self,
        desired_emails: Iterable[str],
        owners: Iterable[str] = (),
        dry_run: bool = False,
        notify: bool = False,
        aliases: Optional[dict[str, str]] = None,
    ) -> SyncReport:
        """
        Make the calendar readers match the desired emails.

        Only user scoped reader rules take part. Owners, and users that hold
        any role other than reader, are pinned: they are neither inserted
        as readers nor deleted.
        """
        report = SyncReport("acl")
        desired = apply_aliases(desired_emails, aliases)

        logger.info(f"Getting ACL rules of calendar {self.calendar_id}")
        rules = await asyncio.to_thread(self.client.list_acl, self.calendar_id)
        logger.info(f"Got {len(rules)} ACL rules")

        readers = [rule for rule in rules if rule.get("role") == READER]
        pinned = set(apply_aliases(owners))
        pinned.update(
            email
            for email in (acl_rule_email(rule) for rule in rules if rule.get("role") != READER)
            if email
        )

        ops = diff(desired, readers, lambda email: email, acl_rule_email).without(pinned)
        logger.info(f"Determined ACL sync operations: {ops.counts()}")
        logger.debug(f"Pinned: {sorted(pinned)}")

        write_ops = [
            WriteOp(
                action=INSERT,
                key=email,
                call=partial(
                    self.client.insert_acl,
                    self.calendar_id,
                    email,
                    role=READER,
                    send_notifications=notify,
                ),
                body=acl_rule(email, READER),
            )
            for email in ops.inserts
        ]
        write_ops.extend(
            WriteOp(
                action=DELETE,
                key=email,
                call=partial(self.client.delete_acl, self.calendar_id, acl_rule_id(rule)),
            )
            for email, rule in ops.deletes.items()
        )

        return await apply_ops(write_ops, report, self.settings.acl_concurrency, dry_run)
