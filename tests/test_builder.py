from __future__ import annotations

import itertools
from datetime import datetime, timezone

import pytest

from pbx_api.domain.builder import build_user_changeset
from pbx_api.domain.contracts import Caller, CreateUserInput, Group, GroupReference
from pbx_api.domain.records import (
    ChangeSet,
    ContactEmailRecord,
    ContactRecord,
    UserGroupRecord,
    UserRecord,
    UserSettingRecord,
    record_columns,
)
from pbx_api.security.permissions import PermissionContext

NOW = datetime(2025, 3, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)


def sequential_ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def build(payload: CreateUserInput, permissions=("contact_add", "contact_email_add"), caller=None):
    return build_user_changeset(
        payload,
        caller=caller or Caller(user_uuid="caller", domain_uuid="d1", username="admin"),
        permissions=PermissionContext(permissions),
        group=Group(group_uuid="g1", group_name="agents"),
        reference=GroupReference.parse(payload.group_reference),
        user_status="On Break",
        id_factory=sequential_ids(),
        clock=lambda: NOW,
        password_hasher=lambda password: f"hashed:{password}",
    )


def make_input(**overrides) -> CreateUserInput:
    values = dict(
        username="agent007",
        password="Str0ng!Pass",
        user_email="a@example.com",
        group_reference="g1",
        domain_uuid="d1",
    )
    values.update(overrides)
    return CreateUserInput(**values)


def test_full_changeset_order_and_links():
    user_uuid, changes = build(
        make_input(
            user_language="en-us",
            user_time_zone="UTC",
            contact_name_given="James",
        )
    )

    assert user_uuid == "id-1"
    assert [record.kind for record in changes] == [
        "user_settings",
        "user_settings",
        "user_groups",
        "contacts",
        "contact_emails",
        "users",
    ]
    language, time_zone, group, contact, email, user = list(changes)
    assert language.user_setting_subcategory == "language"
    assert time_zone.user_setting_subcategory == "time_zone"
    assert group.group_name == "agents"
    assert email.contact_uuid == contact.contact_uuid == user.contact_uuid
    assert user.password == "hashed:Str0ng!Pass"
    assert user.add_date == NOW
    assert user.add_user == "admin"
    assert user.user_status == "On Break"
    assert {record.identifier for record in changes} == {f"id-{n}" for n in range(1, 7)}


def test_minimal_changeset_has_group_and_user():
    _, changes = build(make_input())

    assert changes.kinds() == ["user_groups", "users"]
    [user] = changes.of_kind("users")
    assert user.contact_uuid is None
    assert "contact_uuid" not in record_columns(user)


def test_explicit_group_name_wins():
    _, changes = build(make_input(group_reference="g1|Night Shift"))

    [group] = changes.of_kind("user_groups")
    assert group.group_name == "Night Shift"
    assert group.group_uuid == "g1"


def test_contact_needs_capability():
    _, changes = build(make_input(contact_organization="MI6"), permissions=())

    assert changes.kinds() == ["user_groups", "users"]


def test_anonymous_caller_recorded_as_api():
    _, changes = build(make_input(), caller=Caller(user_uuid="svc", domain_uuid="d1"))

    [user] = changes.of_kind("users")
    assert user.add_user == "api"


def test_changeset_rejects_reference_before_target():
    changes = ChangeSet()
    with pytest.raises(ValueError):
        changes.append(
            ContactEmailRecord(
                contact_email_uuid="e1",
                domain_uuid="d1",
                contact_uuid="c1",
                email_address="a@example.com",
            )
        )
    assert len(changes) == 0


def test_changeset_rejects_duplicate_identifier():
    changes = ChangeSet()
    record = UserSettingRecord(
        user_setting_uuid="s1",
        user_uuid="u1",
        domain_uuid="d1",
        user_setting_category="domain",
        user_setting_subcategory="language",
        user_setting_name="code",
        user_setting_value="en-us",
    )
    changes.append(record)
    with pytest.raises(ValueError):
        changes.append(record)


def test_changeset_accepts_contact_then_dependants():
    changes = ChangeSet()
    changes.append(
        ContactRecord(
            contact_uuid="c1",
            domain_uuid="d1",
            contact_type="user",
            contact_organization="",
            contact_name_given="James",
            contact_name_family="",
            contact_nickname="agent007",
        )
    )
    changes.append(
        ContactEmailRecord(
            contact_email_uuid="e1", domain_uuid="d1", contact_uuid="c1", email_address="a@example.com"
        )
    )
    changes.append(
        UserGroupRecord(
            user_group_uuid="ug1", domain_uuid="d1", group_name="agents", group_uuid="g1", user_uuid="u1"
        )
    )
    changes.append(
        UserRecord(
            user_uuid="u1",
            domain_uuid="d1",
            username="agent007",
            password="x",
            salt=None,
            user_email="a@example.com",
            user_status="",
            user_type="user",
            user_enabled="true",
            add_user="api",
            add_date=NOW,
            contact_uuid="c1",
        )
    )

    assert changes.kinds() == ["contacts", "contact_emails", "user_groups", "users"]
    assert record_columns(changes.of_kind("users")[0])["contact_uuid"] == "c1"
