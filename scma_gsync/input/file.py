"""YAML file source."""

import logging
from datetime import date
from typing import Optional

import yaml
from pydantic import ValidationError

from scma_gsync.errors import ScrapeError
from scma_gsync.models import DateSelect, Event, User

logger = logging.getLogger(__name__)


class FileSource:
    """
    Reads events and members from a YAML document.

    The document has optional top-level ``events`` and ``users`` lists whose
    entries use the field names of the Event and User models.
    """

    def __init__(self, path: str, today: Optional[date] = None):
        self.path = path
        self.today = today
        self._document: Optional[dict] = None

    def _load(self) -> dict:
        if self._document is not None:
            return self._document

        try:
            with open(self.path, encoding="utf-8") as f:
                document = yaml.safe_load(f)
        except OSError as e:
            raise ScrapeError(f"Could not read {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise ScrapeError(f"Could not parse {self.path}: {e}") from e

        if document is None:
            document = {}
        if not isinstance(document, dict):
            raise ScrapeError(f"Could not parse {self.path}: expected a mapping")

        self._document = document
        return document

    def _records(self, key: str) -> list:
        records = self._load().get(key) or []
        if not isinstance(records, list):
            raise ScrapeError(f"Could not parse {self.path}: '{key}' must be a list")
        return records

    def fetch_events(self, date_select: DateSelect = DateSelect.ALL) -> list[Event]:
        try:
            events = [Event.model_validate(record) for record in self._records("events")]
        except ValidationError as e:
            raise ScrapeError(f"Invalid event in {self.path}: {e}") from e

        selected = [event for event in events if date_select.includes(event, self.today)]
        logger.info(
            f"Read {len(events)} events from {self.path}, "
            f"{len(selected)} selected by '{date_select.value}'"
        )
        return selected

    def fetch_event_details(self, event: Event) -> Event:
        # Events in the file are already complete.
        return event

    def fetch_users(self) -> list[User]:
        try:
            users = [User.model_validate(record) for record in self._records("users")]
        except ValidationError as e:
            raise ScrapeError(f"Invalid user in {self.path}: {e}") from e

        logger.info(f"Read {len(users)} users from {self.path}")
        return users
