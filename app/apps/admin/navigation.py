"""后台侧边栏导航与面包屑解析（按权限过滤）。"""

from __future__ import annotations

import copy
from typing import Any

from app.services.permission_service import filter_menu_by_permissions
from app.services.policy_service import PolicyTable
from app.services.role_service import RoleValue

DEFAULT_ITEM_ICON = "circle-dot"

BASE_NAV_GROUPS: list[dict[str, Any]] = [
    {
        "key": "overview",
        "title": "Overview",
        "items": [
            {"key": "dashboard", "title": "Dashboard", "url": "/", "icon": "gauge"},
        ],
    },
    {
        "key": "management",
        "title": "Management",
        "items": [
            {
                "key": "posts",
                "title": "Posts",
                "url": "/posts",
                "icon": "notebook-pen",
                "required_permissions": {"projects": ["read"]},
            },
            {
                "key": "favorites",
                "title": "Favoris",
                "url": "/favorites",
                "icon": "medal",
                "required_permissions": {"projects": ["read"]},
            },
            {
                "key": "content",
                "title": "Content",
                "url": "/content",
                "icon": "pen",
                "required_permissions": {"files": ["read"]},
            },
            {
                "key": "archives",
                "title": "Archives",
                "url": "/archives",
                "icon": "archive",
                "required_permissions": {"files": ["read"]},
            },
        ],
    },
    {
        "key": "others",
        "title": "Autres",
        "items": [
            {
                "key": "concurrents",
                "title": "Concurrents",
                "url": "/concurrents",
                "icon": "users",
                "required_permissions": {"analytics": ["read"]},
            },
            {
                "key": "favorite_posts",
                "title": "Posts Favoris",
                "url": "/favorites-posts",
                "icon": "star",
                "required_permissions": {"analytics": ["read"]},
            },
        ],
    },
    {
        "key": "system",
        "title": "System",
        "items": [
            {
                "key": "settings",
                "title": "Settings",
                "url": "/settings",
                "icon": "settings",
                "required_permissions": {"settings": ["read"]},
            },
        ],
    },
]


def _normalize_path(path: str) -> str:
    """统一路径格式，避免尾斜杠影响匹配。"""

    normalized = str(path or "").strip()
    if not normalized.startswith("/"):
        normalized = f"/{normalized}" if normalized else "/"
    normalized = normalized.rstrip("/")
    return normalized or "/"


def _match_prefix_length(path: str, prefix: str) -> int:
    """返回前缀匹配长度，未命中时返回 -1。"""

    normalized_path = _normalize_path(path)
    normalized_prefix = _normalize_path(prefix)
    if normalized_path == normalized_prefix or normalized_path.startswith(f"{normalized_prefix}/"):
        return len(normalized_prefix)
    return -1


def build_nav_groups() -> list[dict[str, Any]]:
    """返回导航定义副本，调用方可自由修改。"""

    groups = copy.deepcopy(BASE_NAV_GROUPS)
    for group in groups:
        for item in group["items"]:
            item["url"] = _normalize_path(item["url"])
            item.setdefault("icon", DEFAULT_ITEM_ICON)
    return groups


def build_navigation_context(
    path: str,
    role_value: RoleValue,
    *,
    policy: PolicyTable | None = None,
) -> dict[str, Any]:
    """按当前路径和角色构建菜单与面包屑上下文。"""

    matched_item: dict[str, Any] | None = None
    matched_group: dict[str, Any] | None = None
    matched_length = -1
    groups: list[dict[str, Any]] = []

    for group in build_nav_groups():
        visible_items: list[dict[str, Any]] = []
        group_active = False

        for item in filter_menu_by_permissions(group["items"], role_value, policy=policy):
            match_length = _match_prefix_length(path, item["url"])
            active = match_length >= 0
            if active:
                group_active = True
            if match_length > matched_length:
                matched_length = match_length
                matched_item = item
                matched_group = group

            visible_items.append(
                {
                    "key": item["key"],
                    "title": item["title"],
                    "url": item["url"],
                    "icon": item["icon"],
                    "active": active,
                }
            )

        if not visible_items:
            continue

        groups.append(
            {
                "key": group["key"],
                "title": group["title"],
                "active": group_active,
                "items": visible_items,
            }
        )

    return {
        "groups": groups,
        "breadcrumb_parent": matched_group["title"] if matched_group and matched_item else "",
        "breadcrumb_title": matched_item["title"] if matched_item else "",
    }
