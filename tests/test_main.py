"""Tests for the command line entry point."""

import pytest
import yaml

from fakes import FakeCalendarService, FakePeopleService, make_http_error
from scma_gsync import main as main_module
from scma_gsync.errors import RemoteWriteError
from scma_gsync.main import EXIT_FAILED, EXIT_FATAL, EXIT_OK, build_parser, main, report_exit_code
from scma_gsync.sync.executor import INSERT, SyncReport
from scma_gsync.sync.google_calendar import GoogleCalendarClient, acl_rule
from scma_gsync.sync.google_people import GooglePeopleClient

DOCUMENT = """
events:
  - id: 1
    title: Mt. Baldy
    start_date: 2099-01-01
    end_date: 2099-01-02
  - id: 2
    title: Old Trip
    start_date: 2000-01-01
    end_date: 2000-01-01
users:
  - name: User Zero
    email: user0@example.com
    member_status: AM
  - name: User One
    email: user1@example.com
    member_status: Student
"""


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "input.yml"
    path.write_text(DOCUMENT)
    return str(path)


@pytest.fixture
def fake_google(monkeypatch):
    """Route every Google client built by main to in-memory services."""
    calendar_service = FakeCalendarService()
    calendar_service.calendar_pages = [{"items": [{"id": "scma-id", "summary": "SCMA"}]}]
    people_service = FakePeopleService()
    people_service.group_pages = [
        {"contactGroups": [{"resourceName": "contactGroups/abc", "name": "SCMA"}]},
    ]

    monkeypatch.setattr(main_module, "get_credentials", lambda *args, **kwargs: "credentials")
    monkeypatch.setattr(
        main_module,
        "GoogleCalendarClient",
        lambda credentials, timeout: GoogleCalendarClient(credentials, service=calendar_service),
    )
    monkeypatch.setattr(
        main_module,
        "GooglePeopleClient",
        lambda credentials, timeout: GooglePeopleClient(credentials, service=people_service),
    )
    return calendar_service, people_service


class TestParser:
    def test_defaults(self, settings):
        args = build_parser(settings).parse_args(["events", "--input", "in.yml"])

        assert args.dates == "not-past"
        assert args.output == "gcal"
        assert args.calendar == "SCMA"
        assert args.dry_run is False

    def test_users_options(self, settings):
        args = build_parser(settings).parse_args(
            ["users", "--input", "in.yml", "--output", "gppl", "--notify-acl-insert", "true"]
        )

        assert args.output == "gppl"
        assert args.notify_acl_insert is True
        assert args.group == "SCMA"

    def test_invalid_bool(self, settings):
        with pytest.raises(SystemExit):
            build_parser(settings).parse_args(
                ["users", "--input", "in.yml", "--notify-acl-insert", "maybe"]
            )


class TestMain:
    def test_events_yaml_output(self, input_file, capsys):
        exit_code = main(["events", "--input", input_file, "--output", "yaml", "--dates", "all"])

        assert exit_code == EXIT_OK
        records = yaml.safe_load(capsys.readouterr().out)
        assert [record["id"] for record in records] == ["1", "2"]

    def test_users_yaml_output(self, input_file, capsys):
        exit_code = main(["users", "--input", input_file, "--output", "yaml"])

        assert exit_code == EXIT_OK
        records = yaml.safe_load(capsys.readouterr().out)
        assert [record["email"] for record in records] == ["user0@example.com", "user1@example.com"]

    def test_missing_input_is_fatal(self, tmp_path):
        exit_code = main(["events", "--input", str(tmp_path / "missing.yml"), "--output", "yaml"])
        assert exit_code == EXIT_FATAL

    def test_events_to_calendar(self, input_file, fake_google, capsys):
        calendar_service, _ = fake_google

        exit_code = main(["events", "--input", input_file])

        assert exit_code == EXIT_OK
        assert [call["eventId"] for call in calendar_service.calls_to("events.patch")] == ["00001"]
        assert "events: inserts 1/1, updates 0/0, upserts 1/1, deletes 0/0" in capsys.readouterr().out

    def test_users_to_calendar_acl(self, input_file, fake_google):
        calendar_service, _ = fake_google
        calendar_service.acl_pages = [
            {
                "items": [
                    acl_rule("owner@example.com", "owner"),
                    acl_rule("user1@example.com"),
                    acl_rule("former@example.com"),
                ],
            },
        ]

        exit_code = main(["users", "--input", input_file, "--owners", "owner@example.com"])

        assert exit_code == EXIT_OK
        inserts = calendar_service.calls_to("acl.insert")
        assert [call["body"]["scope"]["value"] for call in inserts] == ["user0@example.com"]
        assert inserts[0]["sendNotifications"] is False
        deletes = calendar_service.calls_to("acl.delete")
        assert [call["ruleId"] for call in deletes] == ["user:former@example.com"]

    def test_users_to_contacts(self, input_file, fake_google):
        _, people_service = fake_google

        exit_code = main(["users", "--input", input_file, "--output", "gppl"])

        assert exit_code == EXIT_OK
        (call,) = people_service.calls_to("people.batchCreateContacts")
        assert len(call["body"]["contacts"]) == 2

    def test_write_failure_exit_code(self, input_file, fake_google):
        calendar_service, _ = fake_google
        calendar_service.errors["acl.insert"] = make_http_error(400)

        exit_code = main(["users", "--input", input_file])

        assert exit_code == EXIT_FAILED

    def test_dry_run_with_missing_calendar(self, input_file, fake_google):
        calendar_service, _ = fake_google
        calendar_service.calendar_pages = [{"items": []}]

        exit_code = main(["events", "--input", input_file, "--dry-run"])

        assert exit_code == EXIT_FATAL
        assert calendar_service.write_calls() == []

    def test_missing_aliases_file_is_fatal(self, input_file, fake_google, tmp_path):
        exit_code = main(
            ["users", "--input", input_file, "--email-aliases-file", str(tmp_path / "none.yml")]
        )
        assert exit_code == EXIT_FATAL


def test_report_exit_code(capsys):
    ok = SyncReport("events")
    failed = SyncReport("acl")
    failed.attempted[INSERT] = 1
    failed.errors.append(RemoteWriteError(INSERT, "a@example.com", RuntimeError("boom")))

    assert report_exit_code([ok]) == EXIT_OK
    assert report_exit_code([ok, failed]) == EXIT_FAILED
    assert "Failed to insert a@example.com: boom" in capsys.readouterr().out
