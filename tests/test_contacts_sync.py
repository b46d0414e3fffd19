"""Tests for Google Contacts sync."""

import pytest

from fakes import make_http_error
from scma_gsync.config import Settings
from scma_gsync.errors import MergeInvariantViolation, RemoteListError, TargetNotFoundError
from scma_gsync.sync import contacts as contacts_module
from scma_gsync.sync.contacts import ContactsSync
from scma_gsync.sync.executor import DELETE, INSERT, UPDATE

GROUP = "contactGroups/abc"


@pytest.fixture
def contacts(people_client, settings):
    return ContactsSync(people_client, GROUP, settings)


def _existing(people_service, resource_name, email, **fields):
    people_service.add_person(
        resource_name,
        {
            "names": [{"displayName": email.split("@")[0]}],
            "emailAddresses": [{"type": "SCMA", "value": email}],
            **fields,
        },
    )


class TestOpen:
    @pytest.mark.asyncio
    async def test_finds_existing_group(self, people_client, people_service, settings):
        people_service.group_pages = [
            {"contactGroups": [{"resourceName": GROUP, "name": "SCMA"}]},
        ]

        contacts = await ContactsSync.open(people_client, "SCMA", settings=settings)

        assert contacts.group_resource_name == GROUP
        assert people_service.calls_to("contactGroups.create") == []

    @pytest.mark.asyncio
    async def test_creates_missing_group(self, people_client, people_service, settings):
        contacts = await ContactsSync.open(people_client, "SCMA", settings=settings)

        assert contacts.group_resource_name == "contactGroups/new"

    @pytest.mark.asyncio
    async def test_dry_run_does_not_create(self, people_client, people_service, settings):
        with pytest.raises(TargetNotFoundError):
            await ContactsSync.open(people_client, "SCMA", dry_run=True, settings=settings)

        assert people_service.calls_to("contactGroups.create") == []


class TestSyncContacts:
    @pytest.mark.asyncio
    async def test_inserts_updates_and_ignores(self, contacts, people_service, make_user):
        _existing(people_service, "people/1", "user1@example.com")
        _existing(people_service, "people/2", "user2@example.com")

        users = [make_user("user0@example.com"), make_user("User1@example.com")]
        report = await contacts.sync_contacts(users)

        assert report.ok

        (create,) = people_service.calls_to("people.batchCreateContacts")
        created = [c["contactPerson"] for c in create["body"]["contacts"]]
        assert [p["emailAddresses"][0]["value"] for p in created] == ["user0@example.com"]
        assert created[0]["memberships"][0]["contactGroupMembership"] == {
            "contactGroupResourceName": GROUP,
        }

        (update,) = people_service.calls_to("people.batchUpdateContacts")
        assert list(update["body"]["contacts"]) == ["people/1"]

        # People no longer members are left alone
        assert report.attempted[DELETE] == 0
        assert report.succeeded[INSERT] == 1
        assert report.succeeded[UPDATE] == 1

    @pytest.mark.asyncio
    async def test_empty_group_skips_batch_get(self, contacts, people_service, make_user):
        await contacts.sync_contacts([make_user()])

        assert people_service.calls_to("people.getBatchGet") == []
        assert len(people_service.calls_to("people.batchCreateContacts")) == 1
        assert people_service.calls_to("people.batchUpdateContacts") == []

    @pytest.mark.asyncio
    async def test_inserts_are_batched(self, contacts, people_service, make_user):
        users = [make_user(f"user{i}@example.com") for i in range(120)]

        report = await contacts.sync_contacts(users)

        calls = people_service.calls_to("people.batchCreateContacts")
        assert sorted(len(call["body"]["contacts"]) for call in calls) == [20, 50, 50]
        assert report.attempted[INSERT] == 120
        assert report.succeeded[INSERT] == 120

    @pytest.mark.asyncio
    async def test_dry_run_only_reads(self, contacts, people_service, make_user):
        _existing(people_service, "people/1", "user1@example.com")

        report = await contacts.sync_contacts(
            [make_user("user0@example.com"), make_user("user1@example.com")],
            dry_run=True,
        )

        assert people_service.calls_to("people.batchCreateContacts") == []
        assert people_service.calls_to("people.batchUpdateContacts") == []
        assert report.succeeded[INSERT] == 1
        assert report.succeeded[UPDATE] == 1

    @pytest.mark.asyncio
    async def test_batch_failure_is_collected(self, contacts, people_service, make_user):
        people_service.errors["people.batchCreateContacts"] = make_http_error(400)

        report = await contacts.sync_contacts([make_user("a@example.com"), make_user("b@example.com")])

        assert not report.ok
        assert report.attempted[INSERT] == 2
        assert report.succeeded[INSERT] == 0
        assert "a@example.com" in report.errors[0].key

    @pytest.mark.asyncio
    async def test_listing_failure_aborts(self, contacts, people_service, make_user):
        _existing(people_service, "people/1", "user1@example.com")
        people_service.errors["people.getBatchGet"] = make_http_error(500)

        with pytest.raises(RemoteListError):
            await contacts.sync_contacts([make_user()])

        assert people_service.calls_to("people.batchCreateContacts") == []


class TestMergeViolation:
    @pytest.fixture
    def violating_merge(self, monkeypatch):
        def _merge(user, person):
            raise MergeInvariantViolation("Merge of phoneNumbers would modify entries")

        monkeypatch.setattr(contacts_module, "merge_person", _merge)

    @pytest.mark.asyncio
    async def test_skipped_by_default(self, contacts, people_service, make_user, violating_merge):
        _existing(people_service, "people/1", "user1@example.com")

        report = await contacts.sync_contacts([make_user("user1@example.com")])

        assert people_service.calls_to("people.batchUpdateContacts") == []
        assert report.attempted[UPDATE] == 0

    @pytest.mark.asyncio
    async def test_strict_merge_aborts(self, people_client, people_service, make_user, violating_merge):
        _existing(people_service, "people/1", "user1@example.com")
        contacts = ContactsSync(
            people_client, GROUP, Settings(_env_file=None, strict_merge=True)
        )

        with pytest.raises(MergeInvariantViolation):
            await contacts.sync_contacts([make_user("user1@example.com")])
