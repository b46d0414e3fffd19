"""Source record models."""

import re
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def normalize_email(email: str) -> str:
    """Normalize an email address for use as an identity key."""
    return email.strip().lower()


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to +<country code><digits>.

    Ten digit numbers are assumed to be North American.
    """
    if phone is None:
        return None

    digits = re.sub(r"\D", "", str(phone))
    if not digits:
        return None
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


class DateSelect(str, Enum):
    """Which events to sync."""

    ALL = "all"
    NOT_PAST = "not-past"

    def includes(self, event: "Event", today: Optional[date] = None) -> bool:
        if self is DateSelect.ALL:
            return True
        today = today or date.today()
        return event.end_date >= today


class MemberStatus(str, Enum):
    APPLICANT = "Applicant"
    STUDENT = "Student"
    AM = "AM"
    HM = "HM"
    RM = "RM"


class TripLeaderStatus(str, Enum):
    G = "G"
    S1 = "S1"
    S2 = "S2"


class Comment(BaseModel):
    """A comment posted on an event page."""
    model_config = ConfigDict(frozen=True)

    author: str
    date: datetime
    text: str = ""


class Attendee(BaseModel):
    """An event sign-up."""
    model_config = ConfigDict(frozen=True)

    name: str
    count: int = 1
    comment: str = ""


class Event(BaseModel):
    """An SCMA event."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    url: str = ""
    start_date: date
    end_date: date
    location: str = ""
    description: str = ""
    comments: Optional[list[Comment]] = None
    attendees: Optional[list[Attendee]] = None
    fetched_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def display(self) -> str:
        return f"{self.title} ({self.start_date.isoformat()})"


class User(BaseModel):
    """An SCMA member."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: str
    email: str
    member_status: MemberStatus
    trip_leader_status: Optional[TripLeaderStatus] = None
    position: Optional[str] = None
    address: str = ""
    city: str = ""
    state: str = ""
    zipcode: str = ""
    phone: Optional[str] = None

    @field_validator("id", "zipcode", "phone", mode="before")
    @classmethod
    def _coerce_str(cls, value):
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        return normalize_phone(value)

    def formatted_address(self) -> Optional[str]:
        """Single line postal address, or None if nothing is on file."""
        street = self.address.strip()
        city = self.city.strip()
        region = " ".join(part for part in (self.state.strip(), self.zipcode.strip()) if part)

        parts = [part for part in (street, city, region) if part]
        if not parts:
            return None
        return ", ".join(parts)

    def trip_leader_status_text(self) -> str:
        if self.trip_leader_status is None:
            return "n/a"
        return self.trip_leader_status.value

    def position_text(self) -> str:
        return self.position or "n/a"

    def name_email(self) -> str:
        return f"{self.name} <{self.email}>"
