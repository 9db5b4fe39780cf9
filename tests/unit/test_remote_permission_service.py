from __future__ import annotations

import logging
from typing import Any

import pytest

from app.models import AuthUser
from app.services import permission_service, remote_permission_service
from app.services.auth_service import AuthProviderError
from app.services.remote_permission_service import RemoteFailed, RemoteOk


class FakeProvider:
    """可编排返回值或异常的认证服务替身。"""

    def __init__(self, *, response: Any = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, dict[str, list[str]]]] = []

    async def get_session(self, headers):
        return None

    async def user_has_permission(self, user_id: str, permissions):
        self.calls.append((user_id, dict(permissions)))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.mark.unit
@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"hasPermission": True}, RemoteOk(allowed=True)),
        ({"hasPermission": False, "error": None}, RemoteOk(allowed=False)),
    ],
)
def test_interpret_remote_response_accepts_boolean_field(payload, expected) -> None:
    assert remote_permission_service.interpret_remote_response(payload) == expected


@pytest.mark.unit
@pytest.mark.parametrize("payload", [None, {"success": True}, {"hasPermission": "yes"}, [True], "true"])
def test_interpret_remote_response_treats_other_shapes_as_failure(payload) -> None:
    assert isinstance(remote_permission_service.interpret_remote_response(payload), RemoteFailed)


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("role", "check"),
    [
        ("admin", {"users": ["ban"]}),
        ("employee", {"users": ["ban"]}),
        (["employee", "manager"], {"projects": ["share"], "files": ["delete"]}),
    ],
)
async def test_resolve_permission_falls_back_to_local_when_remote_raises(role, check) -> None:
    provider = FakeProvider(error=AuthProviderError("boom"))
    user = AuthUser(id="u1", role=role)

    result = await remote_permission_service.resolve_permission(provider, user, check)

    assert result is permission_service.has_permission(role, check)
    assert provider.calls


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolve_permission_trusts_explicit_remote_answer() -> None:
    admin = AuthUser(id="u1", role="admin")
    employee = AuthUser(id="u2", role="employee")

    assert await remote_permission_service.resolve_permission(
        FakeProvider(response={"hasPermission": False}), admin, {"users": ["read"]}
    ) is False
    assert await remote_permission_service.resolve_permission(
        FakeProvider(response={"hasPermission": True}), employee, {"users": ["ban"]}
    ) is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolve_permission_unexpected_shape_uses_local(caplog) -> None:
    provider = FakeProvider(response={"success": True})
    employee = AuthUser(id="u2", role="employee")

    with caplog.at_level(logging.WARNING, logger=remote_permission_service.__name__):
        result = await remote_permission_service.resolve_permission(provider, employee, {"users": ["ban"]})

    assert result is False
    assert "回退本地判定" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_resolve_permission_without_provider_or_user() -> None:
    manager = AuthUser(id="u3", role="manager")

    assert await remote_permission_service.resolve_permission(None, manager, {"projects": ["share"]}) is True
    assert await remote_permission_service.resolve_permission(FakeProvider(response={"hasPermission": True}), None, {}) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ask_remote_sends_normalized_check() -> None:
    provider = FakeProvider(response={"hasPermission": True})

    result = await remote_permission_service.ask_remote(
        provider,
        "u1",
        {"users": ["update", "read"], "settings": []},
    )

    assert result == RemoteOk(allowed=True)
    assert provider.calls == [("u1", {"users": ["read", "update"]})]
