"""访问守卫：把权限判定转换为放行或结构化拒绝。"""

from __future__ import annotations

from typing import Any, Sequence

from app.models import AuthUser, Rejection, RejectionCode
from app.services.permission_service import PermissionCheck, has_permission, ordered_check, should_show_element
from app.services.policy_service import PolicyTable, Role, role_key
from app.services.role_service import (
    RoleValue,
    get_ban_expires,
    get_ban_reason,
    has_any_role,
    is_admin,
    is_ban_active,
    normalize_roles,
)

DEFAULT_BAN_REASON = "No reason provided"
LOGIN_PATH = "/login"
UNAUTHORIZED_PATH = "/unauthorized"


def _user_role(user: AuthUser | Any) -> str | list[str] | None:
    return getattr(user, "role", None)


def auth_required() -> Rejection:
    return Rejection(error="Unauthorized", code=RejectionCode.AUTH_REQUIRED, status_code=401)


def account_banned(user: AuthUser | Any) -> Rejection:
    expires = get_ban_expires(user)
    return Rejection(
        error="Account banned",
        code=RejectionCode.ACCOUNT_BANNED,
        status_code=403,
        reason=get_ban_reason(user) or DEFAULT_BAN_REASON,
        expires_at=expires.isoformat() if expires else None,
    )


def admin_required(user: AuthUser | Any) -> Rejection:
    return Rejection(
        error="Forbidden: Admin access required",
        code=RejectionCode.ADMIN_REQUIRED,
        status_code=403,
        user_role=_user_role(user),
    )


def insufficient_role(user: AuthUser | Any, allowed_roles: Sequence[str | Role]) -> Rejection:
    roles = [role_key(role) for role in allowed_roles]
    return Rejection(
        error=f"Forbidden: Requires one of these roles: {', '.join(roles)}",
        code=RejectionCode.INSUFFICIENT_ROLE,
        status_code=403,
        required=roles,
        user_role=_user_role(user),
    )


def insufficient_permissions(user: AuthUser | Any, check: PermissionCheck) -> Rejection:
    required = ordered_check(check)
    return Rejection(
        error="Forbidden: Insufficient permissions",
        code=RejectionCode.INSUFFICIENT_PERMISSIONS,
        status_code=403,
        required=required,
        user_role=_user_role(user),
    )


def evaluate_access(
    user: AuthUser | Any | None,
    *,
    required_permissions: PermissionCheck | None = None,
    required_roles: Sequence[str | Role] | None = None,
    require_admin: bool = False,
    permission_granted: bool | None = None,
    policy: PolicyTable | None = None,
) -> Rejection | None:
    """按 未登录 -> 封禁 -> 管理员 -> 角色 -> 权限 的顺序判定，全部通过返回 None。

    permission_granted 由远程权限桥接传入时，直接采用其结论，不再本地计算。
    """

    if user is None:
        return auth_required()

    if is_ban_active(user):
        return account_banned(user)

    role_value = _user_role(user)
    if require_admin and not is_admin(role_value):
        return admin_required(user)

    if required_roles is not None and not has_any_role(role_value, required_roles):
        return insufficient_role(user, required_roles)

    if required_permissions is not None:
        granted = permission_granted
        if granted is None:
            granted = has_permission(role_value, required_permissions, policy=policy)
        if not granted:
            return insufficient_permissions(user, required_permissions)

    return None


def route_access(
    role_value: RoleValue,
    required_permissions: PermissionCheck | None = None,
    required_roles: Sequence[str | Role] | None = None,
    *,
    policy: PolicyTable | None = None,
) -> dict[str, Any]:
    """前端路由守卫：是否可进入，以及被拒时的跳转地址。"""

    return {
        "can_access": should_show_element(role_value, required_permissions, required_roles, policy=policy),
        "redirect_to": UNAUTHORIZED_PATH if normalize_roles(role_value) else LOGIN_PATH,
    }
