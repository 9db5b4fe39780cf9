"""FastAPI 应用入口。"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .apps.admin.controllers.me import router as me_router
from .apps.admin.controllers.protected import router as protected_router
from .config import APP_NAME
from .middleware.auth import register_auth_handlers
from .services.auth_service import BetterAuthClient
from .services.policy_service import DEFAULT_POLICY


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期：启动时创建认证服务客户端，退出时释放连接。"""

    owns_provider = getattr(app.state, "auth_provider", None) is None
    if owns_provider:
        app.state.auth_provider = BetterAuthClient()
    app.state.policy = DEFAULT_POLICY
    try:
        yield
    finally:
        if owns_provider:
            await app.state.auth_provider.aclose()
            app.state.auth_provider = None


app = FastAPI(title=APP_NAME, lifespan=lifespan)
register_auth_handlers(app)
app.include_router(protected_router)
app.include_router(me_router)
