"""外部认证服务客户端（会话解析与远程权限查询）。"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

import httpx
from pydantic import ValidationError

from app.config import AUTH_BASE_PATH, AUTH_BASE_URL, AUTH_TIMEOUT_SECONDS
from app.models import AuthUser

logger = logging.getLogger(__name__)

# 转发给认证服务的请求头，其余一律丢弃
FORWARDED_HEADERS = ("cookie", "authorization")


class AuthProviderError(RuntimeError):
    """认证服务不可用或返回了非成功状态。"""


class AuthProvider(Protocol):
    async def get_session(self, headers: Mapping[str, str]) -> dict[str, Any] | None: ...

    async def user_has_permission(self, user_id: str, permissions: Mapping[str, list[str]]) -> Any: ...


def parse_session_user(payload: Any) -> AuthUser | None:
    """从会话载荷中提取用户，结构不合法时视为未登录。"""

    if not isinstance(payload, Mapping):
        return None
    user = payload.get("user")
    if not isinstance(user, Mapping):
        return None
    try:
        return AuthUser.model_validate(user)
    except ValidationError:
        logger.warning("会话中的用户数据无法解析，按未登录处理")
        return None


class BetterAuthClient:
    """基于 httpx 的认证服务客户端，每次调用只尝试一次。"""

    def __init__(
        self,
        base_url: str = AUTH_BASE_URL,
        *,
        base_path: str = AUTH_BASE_PATH,
        timeout: float = AUTH_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._base_path = "/" + base_path.strip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self._base_path}/{path.lstrip('/')}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, self._url(path), **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AuthProviderError(f"认证服务请求失败: {method} {path}: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise AuthProviderError(f"认证服务返回了非 JSON 响应: {method} {path}") from exc

    async def get_session(self, headers: Mapping[str, str]) -> dict[str, Any] | None:
        forwarded = {
            name: value
            for name, value in ((name, headers.get(name)) for name in FORWARDED_HEADERS)
            if value
        }
        payload = await self._request("GET", "/get-session", headers=forwarded)
        return payload if isinstance(payload, dict) else None

    async def user_has_permission(self, user_id: str, permissions: Mapping[str, list[str]]) -> Any:
        return await self._request(
            "POST",
            "/admin/has-permission",
            json={"userId": user_id, "permissions": dict(permissions)},
        )
