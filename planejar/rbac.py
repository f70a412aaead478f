from typing import List

from planejar.exceptions import AuthorizationError
from planejar.models import Role, ClientType, STAFF_ROLES


# Permission mapping for each role
ROLE_PERMISSIONS = {
    Role.ADMINISTRATOR: {
        "full_access": True,
        "manage_users": True,
        "delete_users": True,
        "list_users": True,
        "manage_projects": True,
        "advance_phase": True,
        "finalize_project": True,
        "manage_tasks": True,
    },
    Role.CONSULTANT: {
        "manage_users": True,
        "list_users": True,
        "manage_projects": True,
        "advance_phase": True,
        "finalize_project": True,
        "manage_tasks": True,
    },
    Role.AUXILIARY: {
        "list_users": True,
        "manage_tasks": True,
    },
    Role.CLIENT: {},
}


def has_permission(user_role: Role, permission: str) -> bool:
    """Check if a role has a specific permission"""
    return ROLE_PERMISSIONS.get(user_role, {}).get(permission, False)


def require_permission(user, permission: str, message: str = "Acesso negado"):
    if not has_permission(user.role, permission):
        raise AuthorizationError(message)
    return user


def require_any_role(user, roles: List[Role], message: str = "Acesso negado"):
    """Administrators always pass"""
    if user.role not in roles and user.role != Role.ADMINISTRATOR:
        raise AuthorizationError(message)
    return user


def check_full_access(user_role: Role) -> bool:
    return has_permission(user_role, "full_access")


def is_staff(user) -> bool:
    return user.role in STAFF_ROLES


def is_interested_client(user) -> bool:
    return user.role == Role.CLIENT and user.client_type == ClientType.INTERESTED


def can_access_project(user, project) -> bool:
    if user.role == Role.ADMINISTRATOR:
        return True
    if user.role == Role.CONSULTANT:
        return project.consultant_id == user.id
    if user.role == Role.AUXILIARY:
        return project.auxiliary_id == user.id
    return user.id in project.client_ids


def require_project_access(user, project):
    if not can_access_project(user, project):
        raise AuthorizationError("Você não tem acesso a este projeto")
    return project
