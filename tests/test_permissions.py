import pytest

from app.config.permissions_config import ALL_ACTIONS, ROLE_PERMISSIONS, get_permission_matrix
from app.core.errors import PermissionDeniedError
from app.core.permissions import (
    PermissionContext, check_permission, get_user_family_role, has_permission, require_permission
)
from app.modules.users.schemas import UserUpsert


def test_owner_has_every_action():
    assert all(check_permission("owner", action) for action in ALL_ACTIONS)


@pytest.mark.parametrize("role, action", [
    ("caregiver", "edit_events"),
    ("caregiver", "delete_events"),
    ("caregiver", "manage_medications"),
    ("caregiver", "view_pay_rates"),
    ("member", "manage_pay_rates"),
    ("member", "manage_family"),
    ("member", "log_time"),
])
def test_restricted_actions(role, action):
    assert check_permission(role, action) is False


@pytest.mark.parametrize("role, action", [
    ("caregiver", "complete_events"),
    ("caregiver", "log_medications"),
    ("caregiver", "log_time"),
    ("member", "edit_events"),
    ("member", "manage_members"),
])
def test_granted_actions(role, action):
    assert check_permission(role, action) is True


def test_unknown_role_or_action_is_denied():
    assert check_permission(None, "view_calendar") is False
    assert check_permission("", "view_calendar") is False
    assert check_permission("admin", "view_calendar") is False
    assert check_permission("owner", "launch_rockets") is False


def test_require_permission_raises_403():
    context = PermissionContext(user_id="u1", family_id="f1", role="caregiver")
    assert has_permission(context, "view_calendar")
    with pytest.raises(PermissionDeniedError) as exc:
        require_permission(context, "edit_events")
    assert exc.value.status_code == 403
    assert "edit_events" in exc.value.message


def test_permission_matrix_lists_every_role():
    matrix = get_permission_matrix()
    names = {role["name"] for role in matrix["roles"]}
    assert names == set(ROLE_PERMISSIONS)
    for role in matrix["roles"]:
        assert set(role["permissions"]) <= set(ALL_ACTIONS)
    owner = next(r for r in matrix["roles"] if r["name"] == "owner")
    assert set(owner["permissions"]) == set(ALL_ACTIONS)


def test_family_role_lookup(memory_storage):
    memory_storage.upsert_user(UserUpsert(id="u1", first_name="Ana"))
    family = memory_storage.get_user_families("u1")[0]
    assert get_user_family_role(memory_storage, "u1", family.id) == "owner"
    assert get_user_family_role(memory_storage, "stranger", family.id) is None
