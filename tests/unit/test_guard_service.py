from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.models import AuthUser, RejectionCode
from app.services import guard_service


def _user(role, **extra) -> AuthUser:
    return AuthUser(id="u1", email="u1@example.com", name="U1", role=role, **extra)


@pytest.mark.unit
def test_missing_actor_is_unauthenticated() -> None:
    rejection = guard_service.evaluate_access(None, required_permissions={"users": ["read"]})

    assert rejection is not None
    assert rejection.code is RejectionCode.AUTH_REQUIRED
    assert rejection.status_code == 401
    assert rejection.to_payload() == {"error": "Unauthorized", "code": "AUTH_REQUIRED"}


@pytest.mark.unit
def test_ban_is_checked_before_permissions() -> None:
    user = _user("admin", banned=True)

    rejection = guard_service.evaluate_access(
        user,
        required_permissions={"users": ["ban"]},
        required_roles=["admin"],
        require_admin=True,
        permission_granted=True,
    )

    assert rejection is not None
    assert rejection.code is RejectionCode.ACCOUNT_BANNED
    assert rejection.to_payload() == {
        "error": "Account banned",
        "code": "ACCOUNT_BANNED",
        "reason": "No reason provided",
    }


@pytest.mark.unit
def test_ban_payload_surfaces_reason_and_expiry() -> None:
    expires = datetime.now(timezone.utc) + timedelta(days=3)
    user = _user("employee", banned=True, ban_reason="spam", ban_expires=expires)

    payload = guard_service.evaluate_access(user).to_payload()

    assert payload["reason"] == "spam"
    assert payload["expiresAt"] == expires.isoformat()


@pytest.mark.unit
def test_expired_ban_does_not_block() -> None:
    user = _user("admin", banned=True, ban_expires=datetime.now(timezone.utc) - timedelta(minutes=1))

    assert guard_service.evaluate_access(user, require_admin=True) is None


@pytest.mark.unit
def test_admin_requirement() -> None:
    rejection = guard_service.evaluate_access(_user("employee"), require_admin=True)

    assert rejection is not None
    assert rejection.code is RejectionCode.ADMIN_REQUIRED
    assert rejection.to_payload()["userRole"] == "employee"
    assert guard_service.evaluate_access(_user(["employee", "admin"]), require_admin=True) is None


@pytest.mark.unit
def test_missing_role_reports_required_roles() -> None:
    rejection = guard_service.evaluate_access(_user(None), required_roles=["admin", "manager"])

    assert rejection is not None
    assert rejection.to_payload() == {
        "error": "Forbidden: Requires one of these roles: admin, manager",
        "code": "INSUFFICIENT_ROLE",
        "required": ["admin", "manager"],
        "userRole": None,
    }


@pytest.mark.unit
def test_roles_and_permissions_must_both_pass() -> None:
    user = _user("manager")

    rejection = guard_service.evaluate_access(
        user,
        required_roles=["manager"],
        required_permissions={"users": ["ban", "read"], "settings": []},
    )

    assert rejection is not None
    assert rejection.code is RejectionCode.INSUFFICIENT_PERMISSIONS
    assert rejection.to_payload()["required"] == {"users": ["ban", "read"]}
    assert guard_service.evaluate_access(user, required_roles=["manager"], required_permissions={"users": ["read"]}) is None


@pytest.mark.unit
def test_insufficient_permissions_echoes_actions_in_request_order() -> None:
    rejection = guard_service.evaluate_access(
        _user("employee"),
        required_permissions={"users": ["create", "update", "delete"]},
    )

    assert rejection is not None
    assert rejection.to_payload()["required"] == {"users": ["create", "update", "delete"]}


@pytest.mark.unit
def test_remote_decision_replaces_local_evaluation() -> None:
    user = _user("employee")

    assert guard_service.evaluate_access(user, required_permissions={"users": ["ban"]}, permission_granted=True) is None
    rejection = guard_service.evaluate_access(user, required_permissions={"users": ["read"]}, permission_granted=False)
    assert rejection is not None
    assert rejection.code is RejectionCode.INSUFFICIENT_PERMISSIONS


@pytest.mark.unit
def test_route_access_redirect_targets() -> None:
    assert guard_service.route_access(None, {"users": ["read"]}) == {"can_access": False, "redirect_to": "/login"}
    assert guard_service.route_access("employee", {"users": ["ban"]}) == {
        "can_access": False,
        "redirect_to": "/unauthorized",
    }
    assert guard_service.route_access("admin", {"users": ["ban"]})["can_access"] is True
