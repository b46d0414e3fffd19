"""Google Calendar API wrapper."""

import logging
from datetime import timedelta, timezone
from typing import Optional

from googleapiclient.errors import HttpError

from scma_gsync.models import Event, normalize_email
from scma_gsync.sync.pager import list_all
from scma_gsync.sync.transport import DEFAULT_TIMEOUT_SECONDS, build_service

logger = logging.getLogger(__name__)

CALENDAR_LIST_FIELDS = "items(id,summary),nextPageToken"
ACL_FIELDS = "items(id,role,scope),nextPageToken"
EVENT_ID_WIDTH = 5
PACIFIC = timezone(timedelta(hours=-8))
PROJECT_LINK = "<a href='https://github.com/rfdonnelly/scma-gsync'>scma-gsync</a>"

UPDATED = "updated"
INSERTED = "inserted"


class GoogleCalendarClient:
    """Wrapper around Google Calendar API."""

    def __init__(self, credentials, service=None, timeout: int = DEFAULT_TIMEOUT_SECONDS):
        """Initialize with a credential, building the service unless one is given."""
        self.credentials = credentials
        self.service = service or build_service("calendar", "v3", credentials, timeout)

    def list_calendars(self) -> list[dict]:
        """List all calendars the caller has access to."""
        return list_all(
            lambda page_token: self.service.calendarList().list(
                pageToken=page_token,
                fields=CALENDAR_LIST_FIELDS,
            ).execute(),
            collection="calendars",
        )

    def find_calendar(self, name: str) -> Optional[dict]:
        """Find a calendar by its summary."""
        for calendar in self.list_calendars():
            if calendar.get("summary") == name:
                return calendar
        return None

    def create_calendar(self, name: str, description: str, time_zone: str) -> dict:
        """Create a secondary calendar."""
        return self.service.calendars().insert(
            body={
                "summary": name,
                "description": description,
                "timeZone": time_zone,
            },
        ).execute()

    def insert_event(self, calendar_id: str, event_data: dict) -> dict:
        """Create an event with a caller supplied id."""
        return self.service.events().insert(
            calendarId=calendar_id,
            body=event_data,
        ).execute()

    def patch_event(self, calendar_id: str, event_id: str, event_patch: dict) -> dict:
        """Patch (partial update) an event."""
        return self.service.events().patch(
            calendarId=calendar_id,
            eventId=event_id,
            body=event_patch,
        ).execute()

    def upsert_event(self, calendar_id: str, event_data: dict) -> tuple[str, dict]:
        """
        Patch an event by id, creating it if it does not exist yet.

        Returns (UPDATED | INSERTED, response).
        """
        event_id = event_data["id"]
        try:
            result = self.patch_event(calendar_id, event_id, event_data)
        except HttpError as e:
            if e.resp.status != 404:
                raise
            logger.debug(f"Event {event_id} not found, inserting")
            result = self.insert_event(calendar_id, event_data)
            logger.info(f"Inserted {event_id} {event_data.get('summary')} {result.get('htmlLink')}")
            return INSERTED, result

        logger.info(f"Updated {event_id} {event_data.get('summary')} {result.get('htmlLink')}")
        return UPDATED, result

    def list_acl(self, calendar_id: str) -> list[dict]:
        """List every ACL rule of a calendar."""
        return list_all(
            lambda page_token: self.service.acl().list(
                calendarId=calendar_id,
                pageToken=page_token,
                fields=ACL_FIELDS,
            ).execute(),
            collection=f"ACL rules of {calendar_id}",
        )

    def insert_acl(
        self,
        calendar_id: str,
        email: str,
        role: str = "reader",
        send_notifications: bool = False,
    ) -> dict:
        """Grant a user a role on a calendar."""
        return self.service.acl().insert(
            calendarId=calendar_id,
            body=acl_rule(email, role),
            sendNotifications=send_notifications,
        ).execute()

    def delete_acl(self, calendar_id: str, rule_id: str) -> bool:
        """Remove a rule from a calendar by the id Google assigned to it."""
        try:
            self.service.acl().delete(
                calendarId=calendar_id,
                ruleId=rule_id,
            ).execute()
            return True
        except HttpError as e:
            if e.resp.status in (404, 410):
                # Already gone
                return True
            raise


def acl_rule(email: str, role: str = "reader") -> dict:
    return {"role": role, "scope": {"type": "user", "value": email}}


def acl_rule_id(rule: dict) -> str:
    """The listed id of a rule, or the id Google derives from its scope."""
    if rule.get("id"):
        return rule["id"]
    scope = rule.get("scope", {})
    return f"{scope.get('type')}:{scope.get('value')}"


def acl_rule_email(rule: dict) -> Optional[str]:
    """Normalized email of a user scoped rule, None for domain/group/default rules."""
    scope = rule.get("scope", {})
    if scope.get("type") != "user" or not scope.get("value"):
        return None
    return normalize_email(scope["value"])


def event_id(event: Event) -> str:
    """
    Derive the Google event id from the SCMA event id.

    Raises ValueError if the SCMA id is not numeric.
    """
    return f"{int(event.id):0{EVENT_ID_WIDTH}d}"


def event_summary(event: Event, prefix: str = "SCMA: ") -> str:
    return f"{prefix}{event.title}"


def event_start(event: Event) -> dict:
    return {"date": event.start_date.isoformat()}


def event_end(event: Event) -> dict:
    """
    All-day end date.

    Google treats the end date of all-day events as exclusive, so multi-day
    events would show one day short without the extra day.
    """
    if event.start_date == event.end_date:
        end_date = event.end_date
    else:
        end_date = event.end_date + timedelta(days=1)

    return {"date": end_date.isoformat()}


def event_description(event: Event) -> str:
    """Build the HTML event description."""
    parts = [event.url, "<h3>Description</h3>", event.description]

    parts.append("<h3>Attendees</h3>")
    if event.attendees is not None:
        parts.append("<ol>")
        for attendee in event.attendees:
            parts.append(f"<li>{attendee.name} ({attendee.count}) {attendee.comment}</li>")
        parts.append("</ol>")
    else:
        parts.append("None")

    parts.append("<h3>Comments</h3>")
    if event.comments is not None:
        parts.append("<ul>")
        for comment in event.comments:
            posted = comment.date.strftime("%Y-%m-%d %H:%M:%S")
            parts.append(f"<li>{comment.author} ({posted}) {comment.text}</li>")
        parts.append("</ul>")
    else:
        parts.append("None")

    if event.fetched_at is not None:
        fetched_at = event.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        synced = fetched_at.astimezone(PACIFIC).isoformat(timespec="seconds")
        parts.append(f"\n\nLast synced at {synced} by {PROJECT_LINK}.")

    return "".join(parts)


def event_to_google(event: Event, summary_prefix: str = "SCMA: ") -> dict:
    """
    Create the Google event structure for an SCMA event.

    status is always sent so a patch revives an event that was deleted in
    Google Calendar; deleted events keep their id.
    """
    return {
        "id": event_id(event),
        "summary": event_summary(event, summary_prefix),
        "start": event_start(event),
        "end": event_end(event),
        "description": event_description(event),
        "location": event.location,
        "status": "confirmed",
    }
