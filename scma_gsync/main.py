"""Command line entry point."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

import yaml

from scma_gsync.auth import CALENDAR_SCOPES, CONTACTS_SCOPES, AuthType, get_credentials
from scma_gsync.config import Settings, get_settings, load_email_aliases, parse_email_list
from scma_gsync.errors import SyncError
from scma_gsync.input import FileSource
from scma_gsync.models import DateSelect
from scma_gsync.sync import CalendarSync, ContactsSync, SyncReport
from scma_gsync.sync.google_calendar import GoogleCalendarClient
from scma_gsync.sync.google_people import GooglePeopleClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2
EXIT_CANCELLED = 130


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in ("true", "yes", "1", "on"):
        return True
    if normalized in ("false", "no", "0", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got '{value}'")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--input", required=True, help="YAML file with SCMA events and/or users")
    common.add_argument(
        "--auth-type",
        choices=[auth_type.value for auth_type in AuthType],
        default=settings.auth_type,
    )
    common.add_argument("--secret-file", default=settings.secret_file)
    common.add_argument("--token-file", default=settings.token_file)
    common.add_argument("--calendar", default=settings.calendar_name, help="Calendar name")
    common.add_argument(
        "--owners",
        default=settings.calendar_owners,
        help="Comma separated emails pinned as calendar owners",
    )
    common.add_argument(
        "--dry-run",
        action="store_true",
        default=settings.dry_run,
        help="Build and log every change without writing anything",
    )
    common.add_argument("--log-level", default=settings.log_level)

    parser = argparse.ArgumentParser(
        prog="scma-gsync",
        description="Synchronizes SCMA events and members to Google Calendar and Google Contacts",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    events = subparsers.add_parser("events", parents=[common], help="Sync events")
    events.add_argument(
        "--dates",
        choices=[date_select.value for date_select in DateSelect],
        default=DateSelect.NOT_PAST.value,
    )
    events.add_argument("--output", choices=["gcal", "yaml"], default="gcal")

    users = subparsers.add_parser("users", parents=[common], help="Sync members")
    users.add_argument(
        "--output",
        choices=["gcal", "gppl", "yaml"],
        default="gcal",
        help="gcal: calendar readers, gppl: contact group",
    )
    users.add_argument("--group", default=settings.contact_group_name, help="Contact group name")
    users.add_argument("--email-aliases-file", default=settings.email_aliases_file)
    users.add_argument(
        "--notify-acl-insert",
        type=_parse_bool,
        default=settings.notify_acl_insert,
        help="Email new calendar readers",
    )

    return parser


def _print_yaml(records) -> None:
    print(yaml.safe_dump([record.model_dump(mode="json") for record in records], sort_keys=False))


async def _open_calendar(args, settings: Settings) -> tuple[CalendarSync, SyncReport]:
    credentials = await asyncio.to_thread(
        get_credentials,
        AuthType(args.auth_type),
        args.secret_file,
        CALENDAR_SCOPES,
        args.token_file,
    )
    client = GoogleCalendarClient(credentials, timeout=settings.http_timeout_seconds)
    calendar = await CalendarSync.open(client, args.calendar, args.dry_run, settings)
    owners_report = await calendar.pin_owners(parse_email_list(args.owners), args.dry_run)
    return calendar, owners_report


async def sync_events(args, settings: Settings) -> list[SyncReport]:
    source = FileSource(args.input)
    events = source.fetch_events(DateSelect(args.dates))
    events = [source.fetch_event_details(event) for event in events]

    if args.output == "yaml":
        _print_yaml(events)
        return []

    calendar, owners_report = await _open_calendar(args, settings)
    return [owners_report, await calendar.sync_events(events, args.dry_run)]


async def sync_users(args, settings: Settings) -> list[SyncReport]:
    source = FileSource(args.input)
    users = source.fetch_users()

    if args.output == "yaml":
        _print_yaml(users)
        return []

    if args.output == "gppl":
        credentials = await asyncio.to_thread(
            get_credentials,
            AuthType(args.auth_type),
            args.secret_file,
            CONTACTS_SCOPES,
            args.token_file,
        )
        client = GooglePeopleClient(credentials, timeout=settings.http_timeout_seconds)
        contacts = await ContactsSync.open(client, args.group, args.dry_run, settings)
        return [await contacts.sync_contacts(users, args.dry_run)]

    try:
        aliases = load_email_aliases(args.email_aliases_file)
    except ValueError as e:
        raise SyncError(str(e)) from e

    calendar, owners_report = await _open_calendar(args, settings)
    acl_report = await calendar.sync_acl(
        [user.email for user in users],
        owners=parse_email_list(args.owners),
        dry_run=args.dry_run,
        notify=args.notify_acl_insert,
        aliases=aliases,
    )
    return [owners_report, acl_report]


async def _run_cancellable(coro):
    """Run coro as a task that SIGINT and SIGTERM cancel."""
    task = asyncio.ensure_future(coro)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except NotImplementedError:
            # Not available on Windows, Ctrl-C still raises KeyboardInterrupt
            pass
    return await task


def report_exit_code(reports: list[SyncReport]) -> int:
    """Print a summary of every report and pick the exit code."""
    for report in reports:
        print(report.summary())
        for error in report.errors:
            print(f"  {error}")

    if any(not report.ok for report in reports):
        return EXIT_FAILED
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if args.dry_run:
        logger.info("Dry run, no changes will be written")

    command = sync_events if args.command == "events" else sync_users

    try:
        reports = asyncio.run(_run_cancellable(command(args, settings)))
    except (asyncio.CancelledError, KeyboardInterrupt):
        logger.warning("Sync cancelled")
        return EXIT_CANCELLED
    except SyncError as e:
        logger.error(f"Sync aborted: {e}")
        return EXIT_FATAL

    return report_exit_code(reports)


if __name__ == "__main__":
    sys.exit(main())
