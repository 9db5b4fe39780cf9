"""权限解析与鉴权服务。"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar

from app.services.policy_service import DEFAULT_POLICY, PolicyTable, Role
from app.services.role_service import RoleValue, get_highest_role, has_any_role, is_admin, is_manager_or_admin, normalize_roles

PermissionCheck = Mapping[str, Iterable[str] | str | None]
RolePredicate = Callable[[RoleValue], bool]
T = TypeVar("T")


def ordered_check(check: PermissionCheck | None) -> dict[str, list[str]]:
    """按调用方顺序清洗检查项；单个字符串动作视为一项，空动作列表的资源视为不要求。"""

    required: dict[str, list[str]] = {}
    for resource, actions in (check or {}).items():
        if isinstance(actions, str):
            actions = [actions]
        ordered = list(dict.fromkeys(str(action) for action in actions or [] if action))
        if ordered:
            required[str(resource)] = ordered
    return required


def normalize_check(check: PermissionCheck | None) -> dict[str, set[str]]:
    return {resource: set(actions) for resource, actions in ordered_check(check).items()}


def _role_covers(table: PolicyTable, role: str, required: dict[str, set[str]]) -> bool:
    if not table.has_role(role):
        return False
    return all(actions <= table.role_actions(role, resource) for resource, actions in required.items())


def has_permission(
    role_value: RoleValue,
    check: PermissionCheck | None,
    *,
    policy: PolicyTable | None = None,
) -> bool:
    """至少一个角色能独立满足整个检查项时返回 True（不跨角色拼凑授权）。"""

    roles = normalize_roles(role_value)
    if not roles:
        return False

    table = policy or DEFAULT_POLICY
    required = normalize_check(check)
    return any(_role_covers(table, role, required) for role in roles)


def can_access(role_value: RoleValue, resource: str, action: str, *, policy: PolicyTable | None = None) -> bool:
    return has_permission(role_value, {resource: [action]}, policy=policy)


def get_user_actions_for_resource(
    role_value: RoleValue,
    resource: str,
    *,
    policy: PolicyTable | None = None,
) -> set[str]:
    """所有角色在某资源上的动作并集。"""

    table = policy or DEFAULT_POLICY
    actions: set[str] = set()
    for role in normalize_roles(role_value):
        actions |= table.role_actions(role, resource)
    return actions


def get_user_effective_permissions(
    role_value: RoleValue,
    *,
    policy: PolicyTable | None = None,
) -> dict[str, set[str]]:
    """所有角色、所有资源上的授权并集。"""

    table = policy or DEFAULT_POLICY
    permission_map: dict[str, set[str]] = {}
    for role in normalize_roles(role_value):
        for resource, actions in table.grants(role).items():
            permission_map.setdefault(resource, set()).update(actions)
    return permission_map


def serialize_permission_map(
    permission_map: Mapping[str, Iterable[str]],
    *,
    policy: PolicyTable | None = None,
) -> dict[str, list[str]]:
    """按声明顺序输出，供 JSON 响应使用。"""

    table = policy or DEFAULT_POLICY
    return {
        resource: table.order_actions(resource, actions)
        for resource, actions in permission_map.items()
        if actions
    }


def create_permission_guard(check: PermissionCheck, *, policy: PolicyTable | None = None) -> RolePredicate:
    def guard(role_value: RoleValue) -> bool:
        return has_permission(role_value, check, policy=policy)

    return guard


def create_role_guard(allowed_roles: Sequence[str | Role]) -> RolePredicate:
    allowed = tuple(allowed_roles)

    def guard(role_value: RoleValue) -> bool:
        return has_any_role(role_value, allowed)

    return guard


PERMISSION_GUARD_CHECKS: dict[str, dict[str, list[str]]] = {
    "can_manage_users": {"users": ["create", "update", "delete"]},
    "can_view_users": {"users": ["read"]},
    "can_ban_users": {"users": ["ban"]},
    "can_impersonate_users": {"users": ["impersonate"]},
    "can_manage_projects": {"projects": ["create", "update", "delete"]},
    "can_view_projects": {"projects": ["read"]},
    "can_share_projects": {"projects": ["share"]},
    "can_upload_files": {"files": ["upload"]},
    "can_delete_files": {"files": ["delete"]},
    "can_manage_files": {"files": ["update", "delete"]},
    "can_view_analytics": {"analytics": ["read"]},
    "can_export_analytics": {"analytics": ["export"]},
    "can_manage_settings": {"settings": ["update"]},
    "can_view_settings": {"settings": ["read"]},
    "can_manage_sessions": {"session": ["revoke", "delete"]},
}

ROLE_GUARD_ROLES: dict[str, tuple[Role, ...]] = {
    "is_admin": (Role.ADMIN,),
    "is_manager_or_admin": (Role.ADMIN, Role.MANAGER),
    "is_employee": (Role.EMPLOYEE,),
}

GUARDS: dict[str, RolePredicate] = {
    **{name: create_permission_guard(check) for name, check in PERMISSION_GUARD_CHECKS.items()},
    **{name: create_role_guard(roles) for name, roles in ROLE_GUARD_ROLES.items()},
}


def should_show_element(
    role_value: RoleValue,
    required_permissions: PermissionCheck | None = None,
    required_roles: Sequence[str | Role] | None = None,
    *,
    policy: PolicyTable | None = None,
) -> bool:
    """界面可见性判断（仅作提示，最终以服务端鉴权为准）。"""

    if required_permissions is not None and not has_permission(role_value, required_permissions, policy=policy):
        return False
    if required_roles is not None and not has_any_role(role_value, required_roles):
        return False
    return True


def _required_permissions_of(item: Any) -> PermissionCheck | None:
    if isinstance(item, Mapping):
        return item.get("required_permissions")
    return getattr(item, "required_permissions", None)


def filter_menu_by_permissions(
    items: Iterable[T],
    role_value: RoleValue,
    *,
    policy: PolicyTable | None = None,
) -> list[T]:
    """过滤菜单项，未声明 required_permissions 的项始终保留。"""

    visible: list[T] = []
    for item in items:
        required = _required_permissions_of(item)
        if not required or has_permission(role_value, required, policy=policy):
            visible.append(item)
    return visible


def build_permission_flags(role_value: RoleValue, *, policy: PolicyTable | None = None) -> dict[str, Any]:
    """预计算前端常用的权限开关。"""

    table = policy or DEFAULT_POLICY
    highest = get_highest_role(role_value)
    flags = {
        name: has_permission(role_value, check, policy=table)
        for name, check in PERMISSION_GUARD_CHECKS.items()
    }
    return {
        "roles": normalize_roles(role_value),
        "highest_role": highest.value if highest else None,
        "is_admin": is_admin(role_value),
        "is_manager_or_admin": is_manager_or_admin(role_value),
        "permissions": flags,
        "effective_permissions": serialize_permission_map(
            get_user_effective_permissions(role_value, policy=table),
            policy=table,
        ),
    }
