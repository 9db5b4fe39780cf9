"""角色判定与封禁状态。"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping

from app.services.policy_service import Role, role_key

logger = logging.getLogger(__name__)

RoleValue = str | Role | Iterable[str | Role] | None

# 优先级从高到低，先命中者为准
ROLE_PRIORITY: tuple[Role, ...] = (Role.ADMIN, Role.MANAGER, Role.EMPLOYEE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_roles(value: RoleValue) -> list[str]:
    """将单值、列表或空值统一为角色标识列表。"""

    if value is None:
        return []
    if isinstance(value, (str, Enum)):
        items: Iterable[Any] = [value]
    else:
        items = value

    roles: list[str] = []
    for item in items:
        if item is None:
            continue
        name = role_key(item).strip()
        if not name or name in roles:
            continue
        roles.append(name)
    return roles


def has_any_role(value: RoleValue, allowed_roles: Iterable[str | Role]) -> bool:
    """直接按角色名判断是否命中任一允许角色。"""

    allowed = set(normalize_roles(list(allowed_roles)))
    return any(role in allowed for role in normalize_roles(value))


def is_admin(value: RoleValue) -> bool:
    return Role.ADMIN.value in normalize_roles(value)


def is_manager_or_admin(value: RoleValue) -> bool:
    return has_any_role(value, [Role.ADMIN, Role.MANAGER])


def get_highest_role(value: RoleValue) -> Role | None:
    """按 admin > manager > employee 返回最高角色，与列表顺序无关。"""

    roles = normalize_roles(value)
    for role in ROLE_PRIORITY:
        if role.value in roles:
            return role
    return None


def _read_field(source: Any, *names: str) -> Any:
    """兼容模型属性与字典两种取值方式。"""

    for name in names:
        if isinstance(source, Mapping):
            if name in source:
                return source[name]
        elif hasattr(source, name):
            return getattr(source, name)
    return None


def _as_aware(value: Any) -> datetime | None:
    """转为带时区的时间；数字按 epoch 秒或毫秒，无法识别时返回 None。"""

    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            value = datetime.fromtimestamp(value / 1000 if value > 1e11 else value, timezone.utc)
        elif isinstance(value, str):
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        logger.warning("无法解析时间值: %r", value)
        return None
    if not isinstance(value, datetime):
        logger.warning("无法解析时间值: %r", value)
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_ban_expires(ban_state: Any) -> datetime | None:
    return _as_aware(_read_field(ban_state, "ban_expires", "banExpires"))


def get_ban_reason(ban_state: Any) -> str | None:
    reason = _read_field(ban_state, "ban_reason", "banReason")
    return str(reason) if reason else None


def is_ban_active(ban_state: Any, *, now: datetime | None = None) -> bool:
    """封禁生效：banned 为真，且无到期时间或尚未到期；到期时间无法识别时按永久封禁。"""

    if ban_state is None or not _read_field(ban_state, "banned"):
        return False

    expires = get_ban_expires(ban_state)
    if expires is None:
        return True
    return (_as_aware(now) or utc_now()) < expires
