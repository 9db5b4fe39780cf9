"""访问拒绝结果模型。"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RejectionCode(str, Enum):
    """固定的拒绝码。"""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    ACCOUNT_BANNED = "ACCOUNT_BANNED"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"


class Rejection(BaseModel):
    """结构化拒绝结果，供路由层渲染精确错误。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    error: str
    code: RejectionCode
    status_code: int = Field(default=403, exclude=True)
    required: dict[str, list[str]] | list[str] | None = None
    user_role: str | list[str] | None = Field(default=None, alias="userRole")
    reason: str | None = None
    expires_at: str | None = Field(default=None, alias="expiresAt")

    def to_payload(self) -> dict[str, Any]:
        """序列化为响应体，省略未设置的字段。"""

        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        if self.code in {RejectionCode.ADMIN_REQUIRED, RejectionCode.INSUFFICIENT_ROLE, RejectionCode.INSUFFICIENT_PERMISSIONS}:
            payload.setdefault("userRole", None)
        return payload
