"""当前用户的权限信息接口（供前端决定界面可见性）。"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from app.apps.admin.navigation import build_navigation_context
from app.middleware.auth import check_user_permission_api, get_policy, optional_auth, require_auth
from app.models import AuthUser
from app.services.guard_service import route_access
from app.services.permission_service import build_permission_flags, should_show_element
from app.services.policy_service import PolicyTable

router = APIRouter(prefix="/api/me")


@router.get("/permissions")
async def my_permissions(
    user: AuthUser | None = Depends(optional_auth),
    policy: PolicyTable = Depends(get_policy),
) -> dict[str, Any]:
    """角色信息、有效权限与预计算开关；未登录时返回空权限。"""

    role_value = user.role if user else None
    return {
        "is_authenticated": user is not None,
        "user_role": role_value,
        **build_permission_flags(role_value, policy=policy),
    }


@router.post("/permissions/check")
async def check_my_permissions(
    request: Request,
    permissions: dict[str, list[str]] = Body(..., embed=True),
    _user: AuthUser = Depends(require_auth),
) -> dict[str, Any]:
    """由认证服务判定（失败时回退本地），用于前端的服务端权限查询。"""

    return {"has_permission": await check_user_permission_api(request, permissions)}


@router.post("/visibility")
async def element_visibility(
    required_permissions: dict[str, list[str]] | None = Body(default=None),
    required_roles: list[str] | None = Body(default=None),
    user: AuthUser | None = Depends(optional_auth),
    policy: PolicyTable = Depends(get_policy),
) -> dict[str, Any]:
    role_value = user.role if user else None
    return {
        "visible": should_show_element(role_value, required_permissions, required_roles, policy=policy),
        **route_access(role_value, required_permissions, required_roles, policy=policy),
    }


@router.get("/navigation")
async def my_navigation(
    path: str = "/",
    user: AuthUser | None = Depends(optional_auth),
    policy: PolicyTable = Depends(get_policy),
) -> dict[str, Any]:
    return build_navigation_context(path, user.role if user else None, policy=policy)
