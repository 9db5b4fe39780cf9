"""受保护的示例接口：演示各类鉴权依赖的组合方式。"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from app.middleware.auth import (
    check_user_permission,
    describe_user,
    get_current_user,
    require_admin,
    require_auth,
    require_permissions,
    require_role,
)
from app.services.policy_service import Role

router = APIRouter(prefix="/api")


@router.get("/public")
async def public_endpoint() -> dict[str, Any]:
    return {"message": "This is a public endpoint"}


@router.get("/profile", dependencies=[Depends(require_auth)])
async def profile(request: Request) -> dict[str, Any]:
    return {"user": describe_user(get_current_user(request))}


@router.get("/admin/dashboard", dependencies=[Depends(require_auth), Depends(require_admin)])
async def admin_dashboard() -> dict[str, Any]:
    return {"message": "Admin dashboard data"}


@router.get(
    "/management/reports",
    dependencies=[Depends(require_auth), Depends(require_role([Role.ADMIN, Role.MANAGER]))],
)
async def management_reports() -> dict[str, Any]:
    return {"message": "Management reports"}


@router.get("/users", dependencies=[Depends(require_permissions({"users": ["read"]}))])
async def list_users() -> dict[str, Any]:
    return {"message": "List of users"}


@router.post("/users", dependencies=[Depends(require_permissions({"users": ["create"]}))])
async def create_user() -> dict[str, Any]:
    return {"message": "User created"}


@router.delete("/users/{user_id}", dependencies=[Depends(require_permissions({"users": ["delete"]}))])
async def delete_user(user_id: str) -> dict[str, Any]:
    return {"message": f"User {user_id} deleted"}


@router.get("/projects", dependencies=[Depends(require_permissions({"projects": ["read"]}))])
async def list_projects() -> dict[str, Any]:
    return {"message": "List of projects"}


@router.post("/projects", dependencies=[Depends(require_permissions({"projects": ["create"]}))])
async def create_project() -> dict[str, Any]:
    return {"message": "Project created"}


@router.post("/files/upload", dependencies=[Depends(require_permissions({"files": ["upload"]}))])
async def upload_file() -> dict[str, Any]:
    return {"message": "File uploaded"}


@router.delete("/files/{file_id}", dependencies=[Depends(require_permissions({"files": ["delete"]}))])
async def delete_file(file_id: str) -> dict[str, Any]:
    return {"message": f"File {file_id} deleted"}


@router.get("/conditional", dependencies=[Depends(require_auth)])
async def conditional(request: Request) -> dict[str, Any]:
    """在接口内部按权限动态组装返回内容。"""

    user = get_current_user(request)
    return {
        "user": user.name if user else None,
        "permissions": {
            "can_manage_users": check_user_permission(request, {"users": ["create", "update", "delete"]}),
            "can_view_analytics": check_user_permission(request, {"analytics": ["read"]}),
        },
    }
