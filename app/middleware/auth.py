"""请求鉴权依赖（可通过 Depends 组合使用）。"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, NoReturn, Sequence

from fastapi import Depends, FastAPI, Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from app import config
from app.models import AuthUser, Rejection
from app.services.auth_service import AuthProvider, AuthProviderError, parse_session_user
from app.services.guard_service import auth_required, evaluate_access
from app.services.permission_service import PermissionCheck, has_permission
from app.services.policy_service import DEFAULT_POLICY, PolicyTable, Role
from app.services.remote_permission_service import resolve_permission

logger = logging.getLogger(__name__)

UserDependency = Callable[..., Awaitable[AuthUser]]


class AccessDeniedError(Exception):
    """鉴权失败，携带结构化拒绝结果。"""

    def __init__(self, rejection: Rejection):
        super().__init__(rejection.error)
        self.rejection = rejection


def rejection_response(request: Request, rejection: Rejection) -> Response:
    """返回统一的 401/403 响应。"""

    if request.headers.get("HX-Request") == "true":
        return PlainTextResponse(content=rejection.error, status_code=rejection.status_code)
    return JSONResponse(content=rejection.to_payload(), status_code=rejection.status_code)


async def access_denied_handler(request: Request, exc: AccessDeniedError) -> Response:
    return rejection_response(request, exc.rejection)


async def auth_provider_error_handler(request: Request, exc: Exception) -> Response:
    logger.error("认证服务不可用: %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(content={"error": "Authentication provider unavailable"}, status_code=503)


def register_auth_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccessDeniedError, access_denied_handler)
    app.add_exception_handler(AuthProviderError, auth_provider_error_handler)


def get_auth_provider(request: Request) -> AuthProvider | None:
    return getattr(request.app.state, "auth_provider", None)


def get_policy(request: Request) -> PolicyTable:
    return getattr(request.app.state, "policy", None) or DEFAULT_POLICY


def _reject(request: Request, rejection: Rejection) -> NoReturn:
    logger.info(
        "拒绝访问: %s %s code=%s role=%s",
        request.method,
        request.url.path,
        rejection.code.value,
        rejection.user_role,
    )
    raise AccessDeniedError(rejection)


def _deny(request: Request, rejection: Rejection | None) -> None:
    if rejection is not None:
        _reject(request, rejection)


def get_current_user(request: Request) -> AuthUser | None:
    """返回此前鉴权步骤挂载到请求上的用户。"""

    return getattr(request.state, "current_user", None)


async def require_auth(
    request: Request,
    provider: AuthProvider | None = Depends(get_auth_provider),
) -> AuthUser:
    """解析会话；未登录返回 401，封禁中返回 403。"""

    current = get_current_user(request)
    if current is not None:
        return current

    if provider is None:
        raise AuthProviderError("认证服务未配置")

    session = await provider.get_session(request.headers)
    user = parse_session_user(session)
    if user is None:
        _reject(request, auth_required())
    _deny(request, evaluate_access(user))

    request.state.current_user = user
    return user


async def optional_auth(
    request: Request,
    provider: AuthProvider | None = Depends(get_auth_provider),
) -> AuthUser | None:
    """可选登录：能解析就挂载用户，任何情况下都不拒绝。"""

    current = get_current_user(request)
    if current is not None:
        return current
    if provider is None:
        return None

    try:
        session = await provider.get_session(request.headers)
    except Exception as exc:
        logger.debug("可选登录解析失败，按匿名处理: %s", exc)
        return None

    user = parse_session_user(session)
    if user is None or evaluate_access(user) is not None:
        return None
    request.state.current_user = user
    return user


async def require_admin(
    request: Request,
    user: AuthUser = Depends(require_auth),
    policy: PolicyTable = Depends(get_policy),
) -> AuthUser:
    _deny(request, evaluate_access(user, require_admin=True, policy=policy))
    return user


def require_role(allowed_roles: Sequence[str | Role]) -> UserDependency:
    """要求命中任一角色（仅按角色名判断）。"""

    roles = tuple(allowed_roles)

    async def dependency(request: Request, user: AuthUser = Depends(require_auth)) -> AuthUser:
        _deny(request, evaluate_access(user, required_roles=roles))
        return user

    return dependency


def require_permissions_local(check: PermissionCheck) -> UserDependency:
    """仅用本地权限表判定（无网络调用）。"""

    async def dependency(
        request: Request,
        user: AuthUser = Depends(require_auth),
        policy: PolicyTable = Depends(get_policy),
    ) -> AuthUser:
        _deny(request, evaluate_access(user, required_permissions=check, policy=policy))
        return user

    return dependency


def require_permissions(check: PermissionCheck, *, remote: bool | None = None) -> UserDependency:
    """要求满足权限检查项；开启远程判定时先问认证服务，失败回退本地。"""

    async def dependency(
        request: Request,
        user: AuthUser = Depends(require_auth),
        provider: AuthProvider | None = Depends(get_auth_provider),
        policy: PolicyTable = Depends(get_policy),
    ) -> AuthUser:
        use_remote = config.REMOTE_PERMISSION_CHECK if remote is None else remote
        granted: bool | None = None
        if use_remote:
            granted = await resolve_permission(provider, user, check, policy=policy)
        _deny(
            request,
            evaluate_access(user, required_permissions=check, permission_granted=granted, policy=policy),
        )
        return user

    return dependency


def check_user_permission(request: Request, check: PermissionCheck) -> bool:
    """本地判断当前用户是否具备权限。"""

    user = get_current_user(request)
    if user is None:
        return False
    return has_permission(user.role, check, policy=get_policy(request))


async def check_user_permission_api(request: Request, check: PermissionCheck) -> bool:
    """经远程桥接判断当前用户是否具备权限。"""

    user = get_current_user(request)
    if user is None:
        return False
    return await resolve_permission(get_auth_provider(request), user, check, policy=get_policy(request))


def describe_user(user: AuthUser | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return user.model_dump(mode="json", by_alias=True)
