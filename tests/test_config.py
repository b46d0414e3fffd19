"""Tests for configuration loading."""

import pytest

from scma_gsync.config import (
    Settings,
    get_calendar_owners,
    get_settings,
    load_email_aliases,
    parse_email_list,
)


class TestSettings:
    def test_defaults(self, settings):
        assert settings.calendar_name == "SCMA"
        assert settings.contact_group_name == "SCMA"
        assert settings.event_summary_prefix == "SCMA: "
        assert settings.event_concurrency == 3
        assert settings.acl_concurrency == 1
        assert settings.dry_run is False
        assert settings.notify_acl_insert is False
        assert settings.strict_merge is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SCMA_CALENDAR_NAME", "SCMA Test")
        monkeypatch.setenv("SCMA_DRY_RUN", "true")
        monkeypatch.setenv("SCMA_EVENT_CONCURRENCY", "5")

        settings = Settings(_env_file=None)

        assert settings.calendar_name == "SCMA Test"
        assert settings.dry_run is True
        assert settings.event_concurrency == 5

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestParseEmailList:
    def test_empty(self):
        assert parse_email_list(None) == set()
        assert parse_email_list("") == set()

    def test_mixed_separators(self):
        raw = "A@example.com, b@example.com;c@example.com\n d@example.com,,"
        assert parse_email_list(raw) == {
            "a@example.com",
            "b@example.com",
            "c@example.com",
            "d@example.com",
        }

    def test_calendar_owners_from_environment(self, monkeypatch):
        monkeypatch.setenv("SCMA_CALENDAR_OWNERS", "Owner@example.com")
        assert get_calendar_owners() == {"owner@example.com"}


class TestLoadEmailAliases:
    def test_no_file_configured(self):
        assert load_email_aliases(None) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_email_aliases(str(tmp_path / "missing.yml"))

    def test_aliases_are_normalized(self, tmp_path):
        path = tmp_path / "email-aliases.yml"
        path.write_text("Jane@Example.com: Jane.Doe@Gmail.com\n")

        assert load_email_aliases(str(path)) == {"jane@example.com": "jane.doe@gmail.com"}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "email-aliases.yml"
        path.write_text("")

        assert load_email_aliases(str(path)) == {}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "email-aliases.yml"
        path.write_text("- jane@example.com\n")

        with pytest.raises(ValueError, match="expected a mapping"):
            load_email_aliases(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "email-aliases.yml"
        path.write_text("a: [b\n")

        with pytest.raises(ValueError, match="Invalid email aliases file"):
            load_email_aliases(str(path))
