"""Assemble the change set that creates a user and its dependent rows."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from .contracts import Caller, CreateUserInput, Group, GroupReference
from .records import (
    ChangeSet,
    ContactEmailRecord,
    ContactRecord,
    UserGroupRecord,
    UserRecord,
    UserSettingRecord,
)
from ..security.passwords import hash_password
from ..security.permissions import PermissionContext

# Recorded as the creator when the session carries no username.
ANONYMOUS_ACTOR = "api"


def _new_uuid() -> str:
    return str(uuid.uuid4())


def build_user_changeset(
    payload: CreateUserInput,
    *,
    caller: Caller,
    permissions: PermissionContext,
    group: Group,
    reference: GroupReference,
    user_status: str,
    id_factory: Callable[[], str] = _new_uuid,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    password_hasher: Callable[[str], str] = hash_password,
) -> tuple[str, ChangeSet]:
    """Return the new user's identifier and the change set creating it."""
    user_uuid = id_factory()
    domain_uuid = payload.domain_uuid
    changes = ChangeSet()

    if payload.user_language:
        changes.append(
            UserSettingRecord(
                user_setting_uuid=id_factory(),
                user_uuid=user_uuid,
                domain_uuid=domain_uuid,
                user_setting_category="domain",
                user_setting_subcategory="language",
                user_setting_name="code",
                user_setting_value=payload.user_language,
            )
        )
    if payload.user_time_zone:
        changes.append(
            UserSettingRecord(
                user_setting_uuid=id_factory(),
                user_uuid=user_uuid,
                domain_uuid=domain_uuid,
                user_setting_category="domain",
                user_setting_subcategory="time_zone",
                user_setting_name="name",
                user_setting_value=payload.user_time_zone,
            )
        )

    changes.append(
        UserGroupRecord(
            user_group_uuid=id_factory(),
            domain_uuid=domain_uuid,
            group_name=reference.group_name or group.group_name,
            group_uuid=reference.group_uuid,
            user_uuid=user_uuid,
        )
    )

    contact_uuid: str | None = None
    if permissions.exists("contact_add") and payload.has_contact_details:
        contact_uuid = id_factory()
        changes.append(
            ContactRecord(
                contact_uuid=contact_uuid,
                domain_uuid=domain_uuid,
                contact_type="user",
                contact_organization=payload.contact_organization,
                contact_name_given=payload.contact_name_given,
                contact_name_family=payload.contact_name_family,
                contact_nickname=payload.username,
            )
        )
        if permissions.exists("contact_email_add"):
            changes.append(
                ContactEmailRecord(
                    contact_email_uuid=id_factory(),
                    domain_uuid=domain_uuid,
                    contact_uuid=contact_uuid,
                    email_address=payload.user_email,
                )
            )

    changes.append(
        UserRecord(
            user_uuid=user_uuid,
            domain_uuid=domain_uuid,
            username=payload.username,
            password=password_hasher(payload.password),
            salt=None,
            user_email=payload.user_email,
            user_status=user_status,
            user_type=payload.user_type,
            user_enabled=payload.user_enabled,
            add_user=caller.username or ANONYMOUS_ACTOR,
            add_date=clock(),
            contact_uuid=contact_uuid,
        )
    )
    return user_uuid, changes
