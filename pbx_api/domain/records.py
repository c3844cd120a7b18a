"""Typed entity records and the change set that groups them for one save."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar, Iterator, Union


@dataclass(slots=True, frozen=True)
class UserSettingRecord:
    kind: ClassVar[str] = "user_settings"

    user_setting_uuid: str
    user_uuid: str
    domain_uuid: str
    user_setting_category: str
    user_setting_subcategory: str
    user_setting_name: str
    user_setting_value: str
    user_setting_enabled: str = "true"

    @property
    def identifier(self) -> str:
        return self.user_setting_uuid

    def references(self) -> dict[str, str]:
        return {}


@dataclass(slots=True, frozen=True)
class UserGroupRecord:
    kind: ClassVar[str] = "user_groups"

    user_group_uuid: str
    domain_uuid: str
    group_name: str
    group_uuid: str
    user_uuid: str

    @property
    def identifier(self) -> str:
        return self.user_group_uuid

    def references(self) -> dict[str, str]:
        return {}


@dataclass(slots=True, frozen=True)
class ContactRecord:
    kind: ClassVar[str] = "contacts"

    contact_uuid: str
    domain_uuid: str
    contact_type: str
    contact_organization: str
    contact_name_given: str
    contact_name_family: str
    contact_nickname: str

    @property
    def identifier(self) -> str:
        return self.contact_uuid

    def references(self) -> dict[str, str]:
        return {}


@dataclass(slots=True, frozen=True)
class ContactEmailRecord:
    kind: ClassVar[str] = "contact_emails"

    contact_email_uuid: str
    domain_uuid: str
    contact_uuid: str
    email_address: str
    email_primary: str = "1"

    @property
    def identifier(self) -> str:
        return self.contact_email_uuid

    def references(self) -> dict[str, str]:
        return {ContactRecord.kind: self.contact_uuid}


@dataclass(slots=True, frozen=True)
class UserRecord:
    kind: ClassVar[str] = "users"

    user_uuid: str
    domain_uuid: str
    username: str
    password: str
    salt: str | None
    user_email: str
    user_status: str
    user_type: str
    user_enabled: str
    add_user: str
    add_date: datetime
    contact_uuid: str | None = None

    @property
    def identifier(self) -> str:
        return self.user_uuid

    def references(self) -> dict[str, str]:
        if self.contact_uuid is None:
            return {}
        return {ContactRecord.kind: self.contact_uuid}


EntityRecord = Union[UserSettingRecord, UserGroupRecord, ContactRecord, ContactEmailRecord, UserRecord]


class ChangeSet:
    """Ordered collection of entity inserts applied as a single unit.

    A record that points at another record of the same change set (a contact
    email at its contact, a user at its contact) can only be appended once the
    referenced record is already present.
    """

    def __init__(self) -> None:
        self._records: list[EntityRecord] = []
        self._identifiers: dict[str, set[str]] = {}

    def append(self, record: EntityRecord) -> None:
        for kind, identifier in record.references().items():
            if identifier not in self._identifiers.get(kind, set()):
                raise ValueError(
                    f"{record.kind} record references {kind} {identifier} before it was added"
                )
        if record.identifier in self._identifiers.get(record.kind, set()):
            raise ValueError(f"duplicate {record.kind} identifier {record.identifier}")
        self._records.append(record)
        self._identifiers.setdefault(record.kind, set()).add(record.identifier)

    def kinds(self) -> list[str]:
        """Entity kinds present, in order of first appearance."""
        seen: list[str] = []
        for record in self._records:
            if record.kind not in seen:
                seen.append(record.kind)
        return seen

    def of_kind(self, kind: str) -> list[EntityRecord]:
        return [record for record in self._records if record.kind == kind]

    def __iter__(self) -> Iterator[EntityRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


def record_columns(record: EntityRecord) -> dict[str, Any]:
    """Return the column/value mapping for a record, omitting unset optional links."""
    columns = asdict(record)
    if isinstance(record, UserRecord) and record.contact_uuid is None:
        columns.pop("contact_uuid")
    return columns
