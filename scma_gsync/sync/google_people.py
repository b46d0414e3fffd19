"""Google People API wrapper."""

import logging
from typing import Optional

from scma_gsync.errors import RemoteListError
from scma_gsync.models import User, normalize_email
from scma_gsync.sync.merge import check_foreign_preserved, upsert_keyed, upsert_tagged
from scma_gsync.sync.pager import list_all
from scma_gsync.sync.transport import DEFAULT_TIMEOUT_SECONDS, build_service

logger = logging.getLogger(__name__)

CONTACT_GROUPS_GET_MAX_MEMBERS = 999
PEOPLE_BATCH_CREATE_MAX_CONTACTS = 50
PEOPLE_BATCH_GET_MAX_CONTACTS = 50
PEOPLE_BATCH_UPDATE_MAX_CONTACTS = 50

GROUP_FIELDS = "name"
PERSON_FIELDS_GET = "addresses,emailAddresses,names,phoneNumbers,userDefined"
PERSON_FIELDS_UPDATE = "addresses,phoneNumbers,userDefined"

SCMA_TYPE = "SCMA"
SCMA_MEMBER_STATUS_KEY = "SCMA Member Status"
SCMA_TRIP_LEADER_STATUS_KEY = "SCMA Trip Leader Status"
SCMA_POSITION_KEY = "SCMA Position"
SCMA_KEYS = (SCMA_MEMBER_STATUS_KEY, SCMA_TRIP_LEADER_STATUS_KEY, SCMA_POSITION_KEY)


class GooglePeopleClient:
    """Wrapper around Google People API."""

    def __init__(self, credentials, service=None, timeout: int = DEFAULT_TIMEOUT_SECONDS):
        """Initialize with a credential, building the service unless one is given."""
        self.credentials = credentials
        self.service = service or build_service("people", "v1", credentials, timeout)

    def list_contact_groups(self) -> list[dict]:
        return list_all(
            lambda page_token: self.service.contactGroups().list(
                pageToken=page_token,
                groupFields=GROUP_FIELDS,
            ).execute(),
            collection="contact groups",
            items_key="contactGroups",
        )

    def find_contact_group(self, name: str) -> Optional[dict]:
        for group in self.list_contact_groups():
            if group.get("name") == name:
                return group
        return None

    def create_contact_group(self, name: str) -> dict:
        return self.service.contactGroups().create(
            body={
                "contactGroup": {"name": name},
                "readGroupFields": GROUP_FIELDS,
            },
        ).execute()

    def get_member_resource_names(self, group_resource_name: str) -> list[str]:
        """Return the resource names of every person in a contact group."""
        try:
            group = self.service.contactGroups().get(
                resourceName=group_resource_name,
                maxMembers=CONTACT_GROUPS_GET_MAX_MEMBERS,
                groupFields=GROUP_FIELDS,
            ).execute()
        except Exception as e:
            raise RemoteListError(f"members of {group_resource_name}", e) from e

        logger.debug(f"contactGroups.get: {group}")
        resource_names = group.get("memberResourceNames", [])
        if len(resource_names) >= CONTACT_GROUPS_GET_MAX_MEMBERS:
            logger.warning(
                f"Contact group {group_resource_name} has at least "
                f"{CONTACT_GROUPS_GET_MAX_MEMBERS} members, members past that are not "
                f"listed and will be added again"
            )
        return resource_names

    def batch_get_people(self, resource_names: list[str]) -> list[dict]:
        """
        Get people by resource name, PEOPLE_BATCH_GET_MAX_CONTACTS at a time.

        Raises RemoteListError if any batch fails.
        """
        people: list[dict] = []
        total = len(resource_names)

        for start in range(0, total, PEOPLE_BATCH_GET_MAX_CONTACTS):
            chunk = resource_names[start:start + PEOPLE_BATCH_GET_MAX_CONTACTS]
            logger.info(f"Getting group member details {start + 1} to {start + len(chunk)} of {total}")
            try:
                result = self.service.people().getBatchGet(
                    resourceNames=list(chunk),
                    personFields=PERSON_FIELDS_GET,
                ).execute()
            except Exception as e:
                raise RemoteListError("group member details", e) from e

            for response in result.get("responses", []):
                person = response.get("person")
                if person:
                    people.append(person)

        return people

    def batch_create_contacts(self, people: list[dict]) -> dict:
        return self.service.people().batchCreateContacts(
            body={
                "contacts": [{"contactPerson": person} for person in people],
                "readMask": "names,emailAddresses",
            },
        ).execute()

    def batch_update_contacts(self, people: list[dict]) -> dict:
        """Update addresses, phone numbers and user defined fields of people."""
        return self.service.people().batchUpdateContacts(
            body={
                "contacts": {person["resourceName"]: person for person in people},
                "updateMask": PERSON_FIELDS_UPDATE,
                "readMask": PERSON_FIELDS_GET,
            },
        ).execute()


def person_email(person: dict) -> Optional[str]:
    """The SCMA email of a person if available, otherwise the first email."""
    emails = person.get("emailAddresses") or []
    if not emails:
        return None

    email = next((e for e in emails if e.get("type") == SCMA_TYPE), emails[0])
    value = email.get("value")
    if not value:
        return None
    return normalize_email(value)


def person_display_name(person: dict) -> str:
    names = person.get("names") or []
    if names:
        return names[0].get("displayName") or names[0].get("unstructuredName") or ""
    return ""


def person_name_email(person: dict) -> str:
    name = person_display_name(person)
    email = person_email(person)
    if email:
        return f"{name} <{email}>"
    return name


def phone_number(user: User) -> Optional[dict]:
    if not user.phone:
        return None
    return {"type": SCMA_TYPE, "value": user.phone}


def address(user: User) -> Optional[dict]:
    formatted = user.formatted_address()
    if formatted is None:
        return None
    return {"type": SCMA_TYPE, "formattedValue": formatted}


def user_defined_values(user: User) -> dict[str, str]:
    return {
        SCMA_MEMBER_STATUS_KEY: user.member_status.value,
        SCMA_TRIP_LEADER_STATUS_KEY: user.trip_leader_status_text(),
        SCMA_POSITION_KEY: user.position_text(),
    }


def create_person(user: User, group_resource_name: str) -> dict:
    """Create a new contact for a member of the given contact group."""
    person = {
        "names": [{"unstructuredName": user.name}],
        "emailAddresses": [{"type": SCMA_TYPE, "value": user.email}],
        "memberships": [
            {
                "contactGroupMembership": {
                    "contactGroupResourceName": group_resource_name,
                },
            },
        ],
        "userDefined": upsert_keyed(None, user_defined_values(user)),
    }

    new_phone_number = phone_number(user)
    if new_phone_number:
        person["phoneNumbers"] = [new_phone_number]

    new_address = address(user)
    if new_address:
        person["addresses"] = [new_address]

    return person


def merge_person(user: User, person: dict) -> dict:
    """
    Merge an SCMA member into an existing contact.

    The batchUpdateContacts API overwrites every field in the update mask, so
    the existing entries are read first and only the SCMA tagged ones are
    replaced or added:

    * phone number and address, by type "SCMA"
    * member status, trip leader status and position, by user defined key

    A category the member has nothing on file for is left as is. Names,
    emails and group memberships are never touched: the contact was matched
    by email through its group membership, and the name in Google Contacts
    is preferred.

    Raises MergeInvariantViolation if an entry not owned by SCMA would change.
    """
    merged = dict(person)

    phone_numbers = upsert_tagged(person.get("phoneNumbers"), phone_number(user))
    if phone_numbers is not None:
        merged["phoneNumbers"] = phone_numbers

    addresses = upsert_tagged(person.get("addresses"), address(user))
    if addresses is not None:
        merged["addresses"] = addresses

    merged["userDefined"] = upsert_keyed(person.get("userDefined"), user_defined_values(user))

    check_foreign_preserved(
        "phoneNumbers", person.get("phoneNumbers"), merged.get("phoneNumbers"), "type", {SCMA_TYPE}
    )
    check_foreign_preserved(
        "addresses", person.get("addresses"), merged.get("addresses"), "type", {SCMA_TYPE}
    )
    check_foreign_preserved(
        "userDefined", person.get("userDefined"), merged.get("userDefined"), "key", SCMA_KEYS
    )

    return merged
