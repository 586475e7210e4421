"""Role-based access: effective permissions of a user"""
from typing import List

from challan_dashboard.models.user import ADMIN_ROLE, User
from challan_dashboard.schemas.auth import PermissionEntry

# (name, resource, action, description)
PERMISSION_CATALOGUE = [
    ("settlement_configs.read", "settlement_configs", "read", "View settlement rules"),
    ("settlement_configs.write", "settlement_configs", "write", "Create, edit and delete settlement rules"),
    ("challans.read", "challans", "read", "View the challan database and hold amounts"),
    ("challans.search", "challans", "search", "Trigger challan searches and bulk uploads"),
    ("rbac.manage", "rbac", "manage", "Manage user roles and permissions"),
]

DEFAULT_ROLES = {
    ADMIN_ROLE: (
        "Full access",
        [name for name, _, _, _ in PERMISSION_CATALOGUE],
    ),
    "manager": (
        "Manages settlement rules and challan searches",
        ["settlement_configs.read", "settlement_configs.write", "challans.read", "challans.search"],
    ),
    "viewer": (
        "Read-only access to the dashboards",
        ["settlement_configs.read", "challans.read"],
    ),
}


def effective_permissions(user: User) -> List[PermissionEntry]:
    """
    Role permissions minus per-user revocations, plus per-user grants.
    Inactive roles and permissions contribute nothing.
    """
    overrides = {o.permission_id: o for o in user.permission_overrides or []}
    entries = []
    seen = set()

    role = user.role
    if role is not None and role.is_active:
        for permission in role.permissions:
            if not permission.is_active:
                continue
            override = overrides.get(permission.id)
            if override is not None and not override.granted:
                continue
            seen.add(permission.id)
            entries.append(
                PermissionEntry(
                    resource=permission.resource,
                    action=permission.action,
                    source="role",
                    role=role.name,
                )
            )

    for override in overrides.values():
        permission = override.permission
        if not override.granted or permission is None or not permission.is_active:
            continue
        if permission.id in seen:
            continue
        seen.add(permission.id)
        entries.append(
            PermissionEntry(
                resource=permission.resource,
                action=permission.action,
                source="user",
                granted=True,
            )
        )
    return entries


def is_admin(user: User) -> bool:
    return user.role is not None and user.role.name == ADMIN_ROLE and user.role.is_active


def has_permission(user: User, resource: str, action: str) -> bool:
    if is_admin(user):
        return True
    return any(p.resource == resource and p.action == action for p in effective_permissions(user))
