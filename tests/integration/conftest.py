from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import httpx
import pytest

from app import config
from app.main import app


@dataclass
class FakeAuthProvider:
    """替代外部认证服务：会话与远程权限结果均可编排。"""

    user: dict[str, Any] | None = None
    session_error: Exception | None = None
    permission_response: Any = None
    permission_error: Exception | None = None
    session_headers: list[dict[str, str]] = field(default_factory=list)
    permission_calls: list[tuple[str, dict[str, list[str]]]] = field(default_factory=list)

    def login(self, role: Any, **extra: Any) -> None:
        self.user = {"id": "user-1", "email": "user@example.com", "name": "Test User", "role": role, **extra}

    async def get_session(self, headers) -> dict[str, Any] | None:
        self.session_headers.append(dict(headers))
        if self.session_error is not None:
            raise self.session_error
        if self.user is None:
            return None
        return {"session": {"id": "session-1"}, "user": self.user}

    async def user_has_permission(self, user_id: str, permissions) -> Any:
        self.permission_calls.append((user_id, dict(permissions)))
        if self.permission_error is not None:
            raise self.permission_error
        return self.permission_response


@pytest.fixture
def auth_provider(monkeypatch) -> FakeAuthProvider:
    provider = FakeAuthProvider()
    monkeypatch.setattr(app.state, "auth_provider", provider, raising=False)
    monkeypatch.setattr(config, "REMOTE_PERMISSION_CHECK", True)
    return provider


@pytest.fixture
async def client(auth_provider: FakeAuthProvider) -> AsyncIterator[httpx.AsyncClient]:
    """提供基于 ASGITransport 的异步测试客户端。"""

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
