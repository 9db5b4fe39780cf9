"""权限声明表与角色授权（进程级只读配置）。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class PolicyConfigError(ValueError):
    """权限配置非法，进程启动时即失败。"""


class Role(str, Enum):
    """系统内置角色。"""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


# 认证服务 admin 插件自带的声明，同名资源会被业务声明覆盖
PROVIDER_STATEMENTS: dict[str, tuple[str, ...]] = {
    "user": ("create", "list", "set-role", "ban", "impersonate", "delete", "set-password", "get", "update"),
    "session": ("list", "revoke", "delete"),
}

CUSTOM_STATEMENTS: dict[str, tuple[str, ...]] = {
    "users": ("read", "create", "update", "delete", "ban", "impersonate"),
    "projects": ("read", "create", "update", "delete", "share"),
    "files": ("read", "upload", "update", "delete"),
    # 单数形式与认证服务保持一致
    "session": ("read", "revoke", "delete"),
    "analytics": ("read", "export"),
    "settings": ("read", "update"),
}

STATEMENTS: dict[str, tuple[str, ...]] = {**PROVIDER_STATEMENTS, **CUSTOM_STATEMENTS}

ROLE_GRANTS: dict[Role, dict[str, tuple[str, ...]]] = {
    Role.ADMIN: {
        **PROVIDER_STATEMENTS,
        **CUSTOM_STATEMENTS,
    },
    Role.MANAGER: {
        "users": ("read",),
        "projects": ("read", "create", "update", "delete", "share"),
        "files": ("read", "upload", "update", "delete"),
        "analytics": ("read",),
        "settings": ("read",),
    },
    Role.EMPLOYEE: {
        "users": ("read",),
        "projects": ("read",),
        "files": ("read", "upload"),
        "analytics": ("read",),
    },
}


def role_key(value: Any) -> str:
    """统一角色标识为字符串。"""

    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _dedupe(items: Iterable[Any]) -> tuple[str, ...]:
    """保持顺序去重。"""

    return tuple(dict.fromkeys(str(item) for item in items))


@dataclass(frozen=True, slots=True)
class PolicyTable:
    """资源-动作声明表与各角色授权，构建后不可变。"""

    statements: Mapping[str, tuple[str, ...]]
    role_grants: Mapping[str, Mapping[str, frozenset[str]]]

    @classmethod
    def build(
        cls,
        statements: Mapping[str, Iterable[str]],
        role_grants: Mapping[Any, Mapping[str, Iterable[str]]],
    ) -> PolicyTable:
        """校验并构建权限表，任何越权授权都直接抛出 PolicyConfigError。"""

        normalized_statements: dict[str, tuple[str, ...]] = {}
        for resource, actions in statements.items():
            resource_name = str(resource).strip()
            if not resource_name:
                raise PolicyConfigError("资源名称不能为空")
            action_list = _dedupe(actions)
            if not action_list or any(not action.strip() for action in action_list):
                raise PolicyConfigError(f"资源 {resource_name} 的动作列表非法")
            normalized_statements[resource_name] = action_list

        normalized_grants: dict[str, Mapping[str, frozenset[str]]] = {}
        for role, grants in role_grants.items():
            role_name = role_key(role).strip()
            if not role_name:
                raise PolicyConfigError("角色标识不能为空")

            resource_grants: dict[str, frozenset[str]] = {}
            for resource, actions in grants.items():
                legal = normalized_statements.get(resource)
                if legal is None:
                    raise PolicyConfigError(f"角色 {role_name} 引用了未声明的资源: {resource}")
                granted = _dedupe(actions)
                illegal = [action for action in granted if action not in legal]
                if illegal:
                    raise PolicyConfigError(
                        f"角色 {role_name} 在资源 {resource} 上授予了未声明的动作: {', '.join(illegal)}"
                    )
                if granted:
                    resource_grants[resource] = frozenset(granted)
            normalized_grants[role_name] = MappingProxyType(resource_grants)

        return cls(
            statements=MappingProxyType(normalized_statements),
            role_grants=MappingProxyType(normalized_grants),
        )

    @property
    def resources(self) -> tuple[str, ...]:
        return tuple(self.statements)

    @property
    def roles(self) -> tuple[str, ...]:
        return tuple(self.role_grants)

    def legal_actions(self, resource: str) -> tuple[str, ...]:
        return self.statements.get(resource, ())

    def has_role(self, role: Any) -> bool:
        return role_key(role) in self.role_grants

    def grants(self, role: Any) -> Mapping[str, frozenset[str]]:
        """角色授权；未知角色返回空映射。"""

        return self.role_grants.get(role_key(role), MappingProxyType({}))

    def role_actions(self, role: Any, resource: str) -> frozenset[str]:
        return self.grants(role).get(resource, frozenset())

    def order_actions(self, resource: str, actions: Iterable[str]) -> list[str]:
        """按声明顺序排列动作，便于稳定输出。"""

        action_set = set(actions)
        ordered = [action for action in self.legal_actions(resource) if action in action_set]
        ordered.extend(sorted(action_set.difference(ordered)))
        return ordered


DEFAULT_POLICY = PolicyTable.build(STATEMENTS, ROLE_GRANTS)


def get_role_permissions(role: Any, *, policy: PolicyTable | None = None) -> dict[str, list[str]]:
    """返回角色的全部授权（未知角色为空）。"""

    table = policy or DEFAULT_POLICY
    return {
        resource: table.order_actions(resource, actions)
        for resource, actions in table.grants(role).items()
    }
