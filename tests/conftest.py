"""Pytest configuration and fixtures."""

import os
from datetime import date

import pytest

from fakes import FakeCalendarService, FakePeopleService

# Keep the developer's environment out of the tests
for _name in list(os.environ):
    if _name.startswith("SCMA_"):
        del os.environ[_name]


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test load settings from a clean environment."""
    from scma_gsync.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    from scma_gsync.config import Settings

    return Settings(_env_file=None)


@pytest.fixture
def calendar_service():
    return FakeCalendarService()


@pytest.fixture
def people_service():
    return FakePeopleService()


@pytest.fixture
def calendar_client(calendar_service):
    from scma_gsync.sync.google_calendar import GoogleCalendarClient

    return GoogleCalendarClient(credentials=None, service=calendar_service)


@pytest.fixture
def people_client(people_service):
    from scma_gsync.sync.google_people import GooglePeopleClient

    return GooglePeopleClient(credentials=None, service=people_service)


@pytest.fixture
def make_event():
    from scma_gsync.models import Event

    def _make(id="1", start="2024-01-01", end=None, **overrides):
        fields = {
            "id": id,
            "title": f"Event {id}",
            "url": f"https://www.rockclimbing.org/event/{id}",
            "start_date": date.fromisoformat(start),
            "end_date": date.fromisoformat(end or start),
            "location": "Joshua Tree",
            "description": "Bring a rope.",
        }
        fields.update(overrides)
        return Event(**fields)

    return _make


@pytest.fixture
def make_user():
    from scma_gsync.models import User

    def _make(email="user0@example.com", **overrides):
        fields = {
            "name": email.split("@")[0].title(),
            "email": email,
            "member_status": "AM",
        }
        fields.update(overrides)
        return User(**fields)

    return _make
