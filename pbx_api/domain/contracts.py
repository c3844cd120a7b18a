"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class Caller:
    """Authenticated session identity performing the request."""

    user_uuid: str
    domain_uuid: str
    username: str | None = None
    group_level: int = 0
    permissions: frozenset[str] = field(default_factory=frozenset)


@dataclass(slots=True)
class CreateUserInput:
    """Normalised inputs required to create a user within a tenant."""

    username: str
    password: str
    user_email: str
    group_reference: str
    domain_uuid: str
    user_language: str = ""
    user_time_zone: str = ""
    user_type: str = "user"
    user_enabled: str = "true"
    user_status: str = ""
    contact_organization: str = ""
    contact_name_given: str = ""
    contact_name_family: str = ""

    @property
    def has_contact_details(self) -> bool:
        return bool(self.contact_organization or self.contact_name_given or self.contact_name_family)


@dataclass(slots=True, frozen=True)
class GroupReference:
    """Group identifier as supplied by the client, optionally with a display name."""

    group_uuid: str
    group_name: str = ""

    @classmethod
    def parse(cls, value: str) -> "GroupReference":
        """Parse ``uuid`` or ``uuid|display name``."""
        if "|" in value:
            group_uuid, _, group_name = value.partition("|")
            return cls(group_uuid=group_uuid, group_name=group_name)
        return cls(group_uuid=value)


@dataclass(slots=True, frozen=True)
class Group:
    """Stored group row visible to the target tenant."""

    group_uuid: str
    group_name: str
    group_level: int = 0
    domain_uuid: str | None = None
