"""远程权限桥接：优先询问认证服务，失败时回退本地判定。"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Mapping

from app.models import AuthUser
from app.services.auth_service import AuthProvider
from app.services.permission_service import PermissionCheck, has_permission, normalize_check
from app.services.policy_service import PolicyTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RemoteOk:
    """认证服务给出了明确结论。"""

    allowed: bool


@dataclass(frozen=True, slots=True)
class RemoteFailed:
    """调用失败或响应结构不符合预期。"""

    reason: str


RemoteResult = RemoteOk | RemoteFailed


def interpret_remote_response(payload: Any) -> RemoteResult:
    """只认可携带布尔 hasPermission 字段的对象，其余一律视为失败。"""

    if isinstance(payload, Mapping) and isinstance(payload.get("hasPermission"), bool):
        return RemoteOk(allowed=payload["hasPermission"])
    return RemoteFailed(reason=f"unexpected response shape: {type(payload).__name__}")


async def ask_remote(provider: AuthProvider | None, user_id: str, check: PermissionCheck) -> RemoteResult:
    """单次询问认证服务，不重试；超时由外层请求控制。"""

    if provider is None:
        return RemoteFailed(reason="auth provider not configured")

    permissions = {resource: sorted(actions) for resource, actions in normalize_check(check).items()}
    try:
        payload = await provider.user_has_permission(user_id, permissions)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        return RemoteFailed(reason=f"{type(exc).__name__}: {exc}")
    return interpret_remote_response(payload)


async def resolve_permission(
    provider: AuthProvider | None,
    user: AuthUser | None,
    check: PermissionCheck,
    *,
    policy: PolicyTable | None = None,
) -> bool:
    """远程失败时回退本地判定，本函数自身从不抛出业务异常。"""

    if user is None:
        return False

    result = await ask_remote(provider, user.id, check)
    if isinstance(result, RemoteOk):
        return result.allowed

    logger.warning("远程权限查询失败，回退本地判定: user=%s reason=%s", user.id, result.reason)
    return has_permission(user.role, check, policy=policy)
