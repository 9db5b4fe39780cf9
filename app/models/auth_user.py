"""认证用户模型（由外部认证服务的会话解析而来）。"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.services.role_service import normalize_roles


class BanState(BaseModel):
    """封禁状态。"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    banned: bool | None = None
    ban_reason: str | None = Field(default=None, alias="banReason")
    ban_expires: datetime | None = Field(default=None, alias="banExpires")


class AuthUser(BanState):
    """当前请求的操作者，只读。"""

    id: str = Field(..., min_length=1)
    email: str = ""
    name: str = ""
    role: str | list[str] | None = None

    @property
    def roles(self) -> list[str]:
        return normalize_roles(self.role)
