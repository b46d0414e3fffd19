"""Source record provider interface."""

from typing import Protocol

from scma_gsync.models import DateSelect, Event, User


class Source(Protocol):
    """Anything that can produce SCMA events and members."""

    def fetch_events(self, date_select: DateSelect) -> list[Event]:
        ...

    def fetch_event_details(self, event: Event) -> Event:
        """Return the event enriched with comments and attendees."""
        ...

    def fetch_users(self) -> list[User]:
        ...
