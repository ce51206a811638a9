"""
Ability derivation & the permission decision.

An *ability* is the flat set of ``"resource:ACTION"`` keys a principal
holds, recomputed from its current roles on every authenticated
request.  Derivation is a plain union — nothing is collapsed or
expanded at this stage.

The ``MANAGE`` wildcard lives in exactly one place, ``can_perform``:

    can_perform(ability, "CREATE", "route")
        is True iff "route:MANAGE" or "route:CREATE" is in the ability.

No other action implies another (``UPDATE`` does not imply ``READ``).
"""

from collections.abc import Iterable

from app.models.permission import PermissionAction
from app.models.role import Role

Ability = frozenset[str]
Requirement = tuple[PermissionAction | str, str]

EMPTY_ABILITY: Ability = frozenset()


def permission_key(resource: str, action: PermissionAction | str) -> str:
    """Canonical ``"{resource}:{ACTION}"`` form.

    Raises ``ValueError`` for an action outside the fixed vocabulary.
    """
    return f"{resource}:{PermissionAction(action).value}"


def derive_ability(roles: Iterable[Role]) -> Ability:
    """Union of every permission across ``roles``; no roles → empty ability."""
    return frozenset(
        permission_key(permission.resource, permission.action)
        for role in roles
        for permission in role.permissions
    )


def can_perform(ability: Ability, action: PermissionAction | str, resource: str) -> bool:
    key = permission_key(resource, action)
    if permission_key(resource, PermissionAction.MANAGE) in ability:
        return True
    return key in ability


def can_perform_any(ability: Ability, requirements: Iterable[Requirement]) -> bool:
    """True if *any* ``(action, resource)`` pair is satisfied.

    An empty requirement list is never satisfied here; callers that treat
    "no requirements" as public must check for that first.
    """
    return any(can_perform(ability, action, resource) for action, resource in requirements)
