from __future__ import annotations

from functools import lru_cache

from backend.app.config import AppSettings, load_settings
from backend.app.services.telegraph_client import TelegraphClient
from backend.app.services.tool_dispatcher import ToolDispatcher
from backend.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_telegraph_client() -> TelegraphClient:
    return build_telegraph_client(get_settings(), telemetry=get_telemetry())


@lru_cache(maxsize=1)
def get_dispatcher() -> ToolDispatcher:
    settings = get_settings()
    return ToolDispatcher(
        telegraph_client=get_telegraph_client(),
        telemetry=get_telemetry(),
        max_content_bytes=settings.max_content_bytes,
        backup_default_limit=settings.backup_default_limit,
    )


def build_telegraph_client(
    settings: AppSettings,
    *,
    telemetry: TelemetryClient | None = None,
) -> TelegraphClient:
    return TelegraphClient(
        api_base_url=settings.api_base_url,
        upload_url=settings.upload_url,
        file_base_url=settings.file_base_url,
        http_timeout_seconds=settings.http_timeout_seconds,
        user_agent=settings.user_agent,
        telemetry=telemetry,
    )


def reset_cached_dependencies() -> None:
    get_dispatcher.cache_clear()
    get_telegraph_client.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
