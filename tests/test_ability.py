"""Unit tests for ability derivation and the permission decision."""

from types import SimpleNamespace

import pytest

from app.models.permission import PermissionAction
from app.rbac.ability import (
    EMPTY_ABILITY,
    can_perform,
    can_perform_any,
    derive_ability,
    permission_key,
)


def _role(*pairs):
    return SimpleNamespace(
        permissions=[SimpleNamespace(resource=r, action=PermissionAction(a)) for r, a in pairs]
    )


# ── Derivation ─────────────────────────────────────

def test_derive_ability_is_union_of_roles():
    ability = derive_ability([
        _role(("user", "READ"), ("role", "READ")),
        _role(("user", "READ"), ("user", "UPDATE")),
    ])
    assert ability == frozenset({"user:READ", "role:READ", "user:UPDATE"})


def test_no_roles_gives_empty_ability():
    assert derive_ability([]) == EMPTY_ABILITY
    assert not can_perform(EMPTY_ABILITY, "READ", "user")


def test_manage_is_kept_as_is_not_expanded():
    ability = derive_ability([_role(("route", "MANAGE"))])
    assert ability == frozenset({"route:MANAGE"})


# ── Decision ───────────────────────────────────────

@pytest.mark.parametrize("action", [a.value for a in PermissionAction])
def test_manage_implies_every_action_on_its_resource(action):
    ability = frozenset({"route:MANAGE"})
    assert can_perform(ability, action, "route")
    assert not can_perform(ability, action, "user")


def test_actions_do_not_imply_each_other():
    ability = frozenset({"user:UPDATE"})
    assert can_perform(ability, "UPDATE", "user")
    assert not can_perform(ability, "READ", "user")
    assert not can_perform(ability, "MANAGE", "user")


def test_enum_and_string_actions_are_equivalent():
    ability = frozenset({"user:IMPORT"})
    assert can_perform(ability, PermissionAction.IMPORT, "user")
    assert can_perform(ability, "IMPORT", "user")


def test_unknown_action_is_rejected():
    with pytest.raises(ValueError):
        can_perform(frozenset({"user:READ"}), "FLY", "user")
    with pytest.raises(ValueError):
        can_perform(frozenset({"route:MANAGE"}), "FLY", "route")
    with pytest.raises(ValueError):
        can_perform_any(frozenset({"user:MANAGE"}), [("FLY", "user")])
    with pytest.raises(ValueError):
        permission_key("user", "read")


def test_can_perform_any():
    ability = frozenset({"role:READ"})
    assert can_perform_any(ability, [("READ", "user"), ("READ", "role")])
    assert not can_perform_any(ability, [("READ", "user"), ("DELETE", "role")])
    assert not can_perform_any(ability, [])
