from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


DEFAULT_API_BASE_URL = "http://localhost:8000/api"
DEFAULT_EMBED_TOKEN_URL = "http://localhost:3000/getEmbedToken"
DEFAULT_SAVE_QUIET_PERIOD_MS = 1000
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_PAGE_NAME = "dashboard"
DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


@dataclass(frozen=True)
class DashboardSettings:
    api_base_url: str = DEFAULT_API_BASE_URL
    embed_token_url: str = DEFAULT_EMBED_TOKEN_URL
    save_quiet_period_ms: int = DEFAULT_SAVE_QUIET_PERIOD_MS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    page_name: str = DEFAULT_PAGE_NAME
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @property
    def save_quiet_period(self) -> float:
        return self.save_quiet_period_ms / 1000.0


def _as_int(value: Optional[str], default: int, *, minimum: int = 0) -> int:
    if value is None or not str(value).strip():
        return default
    try:
        return max(minimum, int(value))
    except Exception:
        return default


def _as_float(value: Optional[str], default: float) -> float:
    if value is None or not str(value).strip():
        return default
    try:
        out = float(value)
    except Exception:
        return default
    return out if out > 0 else default


def _as_list(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    return [part.strip() for part in value.split(",") if part.strip()]


def load_settings(env: Optional[Mapping[str, str]] = None) -> DashboardSettings:
    """Build settings from ``DASHBOARD_*`` environment variables, falling back to defaults."""
    env = os.environ if env is None else env
    return DashboardSettings(
        api_base_url=(env.get("DASHBOARD_API_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
        embed_token_url=env.get("DASHBOARD_EMBED_TOKEN_URL") or DEFAULT_EMBED_TOKEN_URL,
        save_quiet_period_ms=_as_int(env.get("DASHBOARD_SAVE_QUIET_MS"), DEFAULT_SAVE_QUIET_PERIOD_MS),
        request_timeout=_as_float(env.get("DASHBOARD_REQUEST_TIMEOUT"), DEFAULT_REQUEST_TIMEOUT),
        page_name=env.get("DASHBOARD_PAGE_NAME") or DEFAULT_PAGE_NAME,
        cors_origins=_as_list(env.get("DASHBOARD_CORS_ORIGINS"), DEFAULT_CORS_ORIGINS),
        host=env.get("DASHBOARD_HOST") or DEFAULT_HOST,
        port=_as_int(env.get("DASHBOARD_PORT"), DEFAULT_PORT, minimum=1),
    )
