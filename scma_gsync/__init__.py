"""Synchronizes SCMA events and members to Google Calendar and Google Contacts."""

__version__ = "2.4.0"
