"""Authentication module."""

from scma_gsync.auth.google import (
    AuthType,
    CALENDAR_SCOPES,
    CONTACTS_SCOPES,
    get_credentials,
)

__all__ = [
    "AuthType",
    "CALENDAR_SCOPES",
    "CONTACTS_SCOPES",
    "get_credentials",
]
