"""Application configuration management."""

import os
import re
from functools import lru_cache
from typing import Optional

import yaml
from pydantic_settings import BaseSettings

from scma_gsync.models import normalize_email


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Targets
    calendar_name: str = "SCMA"
    contact_group_name: str = "SCMA"
    calendar_owners: str = ""  # Comma separated, pinned as calendar owners
    calendar_description: str = (
        "Southern California Mountaineers Association events. "
        "Managed by scma-gsync, changes made here will be overwritten."
    )
    calendar_time_zone: str = "America/Los_Angeles"

    # Behavior
    dry_run: bool = False
    notify_acl_insert: bool = False
    email_aliases_file: Optional[str] = None
    strict_merge: bool = False
    event_summary_prefix: str = "SCMA: "

    # Auth
    auth_type: str = "oauth"
    secret_file: str = "secret.json"
    token_file: str = "token.json"

    # Logging
    log_level: str = "info"

    # Remote API limits
    event_concurrency: int = 3
    acl_concurrency: int = 1
    contacts_concurrency: int = 1
    http_timeout_seconds: int = 60

    class Config:
        env_prefix = "SCMA_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def parse_email_list(raw: Optional[str]) -> set[str]:
    """Parse comma/newline/semicolon separated email values."""
    if not raw:
        return set()

    emails: set[str] = set()
    for token in re.split(r"[,\n;]+", raw):
        email = normalize_email(token)
        if email:
            emails.add(email)
    return emails


def get_calendar_owners() -> set[str]:
    """Get normalized pinned calendar owners."""
    return parse_email_list(get_settings().calendar_owners)


def load_email_aliases(path: Optional[str]) -> dict[str, str]:
    """
    Load the email alias table.

    The file is a YAML mapping of member email to the address Google resolves
    it to, e.g. ``jane@example.com: jane.doe@gmail.com``.
    """
    if not path:
        return {}

    if not os.path.exists(path):
        raise ValueError(f"Email aliases file not found at {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid email aliases file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid email aliases file {path}: expected a mapping")

    return {
        normalize_email(str(alias)): normalize_email(str(canonical))
        for alias, canonical in data.items()
    }
