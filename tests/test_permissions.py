from __future__ import annotations

import pytest

from pbx_api.security.permissions import PermissionContext


def test_exists_reflects_session_capabilities():
    permissions = PermissionContext({"user_add"})
    assert permissions.exists("user_add")
    assert not permissions.exists("user_edit")


def test_temporary_grants_revoked_after_block():
    permissions = PermissionContext({"user_add"})

    with permissions.temporary("user_edit", "user_group_add") as scoped:
        assert scoped is permissions
        assert permissions.exists("user_edit")
        assert permissions.temporary_grants == ("user_edit", "user_group_add")

    assert not permissions.exists("user_edit")
    assert permissions.temporary_grants == ()


def test_temporary_grants_revoked_when_block_raises():
    permissions = PermissionContext(())

    with pytest.raises(RuntimeError):
        with permissions.temporary("user_edit"):
            raise RuntimeError("save failed")

    assert not permissions.exists("user_edit")


def test_nested_grants_only_revoke_their_own():
    permissions = PermissionContext(())

    with permissions.temporary("user_edit"):
        with permissions.temporary("user_edit", "contact_add"):
            assert permissions.temporary_grants == ("user_edit", "contact_add")
        assert permissions.temporary_grants == ("user_edit",)
    assert permissions.temporary_grants == ()


def test_contexts_are_independent():
    first = PermissionContext({"user_add"})
    second = PermissionContext({"user_add"})

    with first.temporary("user_edit"):
        assert not second.exists("user_edit")
