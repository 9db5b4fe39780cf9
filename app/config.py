"""应用配置（通过 .env 覆盖）。"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# 优先加载项目根目录下的 .env
BASE_DIR = Path(__file__).resolve().parents[1]
load_dotenv(BASE_DIR / ".env")


def _to_int(value: str | None, default: int, *, minimum: int = 0) -> int:
    """安全解析整数环境变量。"""

    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= minimum else default


def _to_float(value: str | None, default: float, *, minimum: float = 0.0) -> float:
    """安全解析浮点环境变量。"""

    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= minimum else default


def _to_bool(value: str | None, default: bool = False) -> bool:
    """安全解析布尔环境变量。"""

    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "on", "yes"}


APP_NAME = os.getenv("APP_NAME", "Dolomys Admin")
APP_ENV = os.getenv("APP_ENV", "dev")
APP_PORT = _to_int(os.getenv("APP_PORT"), 3000, minimum=1)

AUTH_BASE_URL = os.getenv("AUTH_BASE_URL", "http://localhost:3001").rstrip("/")
AUTH_BASE_PATH = "/" + os.getenv("AUTH_BASE_PATH", "/api/auth").strip("/")
AUTH_TIMEOUT_SECONDS = _to_float(os.getenv("AUTH_TIMEOUT_SECONDS"), 5.0, minimum=0.1)
REMOTE_PERMISSION_CHECK = _to_bool(os.getenv("REMOTE_PERMISSION_CHECK"), default=True)

UVICORN_HOST = os.getenv("UVICORN_HOST", "0.0.0.0")
UVICORN_LOG_LEVEL = os.getenv("UVICORN_LOG_LEVEL", "info")
UVICORN_RELOAD = _to_bool(os.getenv("UVICORN_RELOAD"), default=False)
