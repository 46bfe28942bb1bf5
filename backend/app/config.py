from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".telegraph-tools"
TELEGRAPH_CONTENT_LIMIT_BYTES = 64 * 1024
_DATA_DIR_RELATIVE_DEFAULTS: tuple[tuple[str, Path], ...] = (("log_dir", Path("logs")),)
_PATH_FIELDS: tuple[str, ...] = (
    "data_dir",
    *(field_name for field_name, _ in _DATA_DIR_RELATIVE_DEFAULTS),
)
_BOOLEAN_COERCION_FIELDS: tuple[str, ...] = ("telemetry_enabled",)
_URL_FIELDS: dict[str, str] = {
    "api_base_url": "TELEGRAPH_TOOLS_API_BASE_URL",
    "upload_url": "TELEGRAPH_TOOLS_UPLOAD_URL",
    "file_base_url": "TELEGRAPH_TOOLS_FILE_BASE_URL",
}


def _default_in_data_dir(relative_path: Path) -> Path:
    return Path(DEFAULT_DATA_DIR) / relative_path


def _data_dir_default_note(relative_path: Path) -> str:
    return f"Defaults to `${{TELEGRAPH_TOOLS_DATA_DIR}}/{relative_path}` when not explicitly set."


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _parse_bool_with_default(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if not isinstance(value, str):
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


class AppSettings(BaseSettings):
    """
    Canonical runtime configuration.

    This class is the single source of truth for config options:
    - what each option controls,
    - where it comes from (`TELEGRAPH_TOOLS_*`),
    - and what its default is.
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAPH_TOOLS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Core paths.
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for logs and other local artifacts.",
    )

    # Telegraph endpoints.
    api_base_url: str = Field(
        default="https://api.telegra.ph",
        description="Telegraph API base URL; methods are posted to `<base>/<method>`.",
    )
    upload_url: str = Field(
        default="https://telegra.ph/upload",
        description="Telegraph file upload endpoint.",
    )
    file_base_url: str = Field(
        default="https://telegra.ph",
        description="Prefix joined with the `src` path returned by uploads.",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for Telegraph API and upload requests.",
    )
    user_agent: str = Field(
        default="telegraph-tools/0.1",
        description="User-Agent sent to Telegraph.",
    )

    # Content handling.
    max_content_bytes: int = Field(
        default=TELEGRAPH_CONTENT_LIMIT_BYTES,
        ge=1,
        description="Maximum serialized node JSON size accepted for page create/edit.",
    )
    backup_default_limit: int = Field(
        default=50,
        ge=1,
        le=200,
        description="Number of pages exported by account backups when no limit is given.",
    )

    # Logging.
    log_dir: Path = Field(
        default=_default_in_data_dir(Path("logs")),
        description=f"Directory for log files. {_data_dir_default_note(Path('logs'))}",
    )
    log_level: str = Field(
        default="INFO",
        description="Console log level.",
    )

    # Telemetry.
    telemetry_enabled: bool = Field(
        default=True,
        description="Enable lightweight internal telemetry events.",
    )
    telemetry_sink: Literal["none", "log"] = Field(
        default="log",
        description=(
            "Telemetry sink backend. `log` emits structured telemetry locally; "
            "`none` disables sink output."
        ),
    )

    @field_validator("telemetry_sink", mode="before")
    @classmethod
    def _normalize_telemetry_sink(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("TELEGRAPH_TOOLS_TELEMETRY_SINK must be a string.")
        normalized = value.strip().lower()
        if normalized in {"none", "log"}:
            return normalized
        raise ValueError("TELEGRAPH_TOOLS_TELEMETRY_SINK must be set to: none, log.")

    @field_validator(*_URL_FIELDS, mode="before")
    @classmethod
    def _normalize_urls(cls, value: Any, info: ValidationInfo) -> str:
        field_name = info.field_name
        assert field_name is not None
        env_name = _URL_FIELDS[field_name]
        if not isinstance(value, str):
            raise ValueError(f"{env_name} must be a string.")
        normalized = value.strip().rstrip("/")
        if not normalized:
            raise ValueError(f"{env_name} must not be empty.")
        if not normalized.startswith(("http://", "https://")):
            raise ValueError(f"{env_name} must be an http(s) URL.")
        return normalized

    @field_validator("user_agent", mode="before")
    @classmethod
    def _normalize_user_agent(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("TELEGRAPH_TOOLS_USER_AGENT must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("TELEGRAPH_TOOLS_USER_AGENT must not be empty.")
        return normalized

    @field_validator(*_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator(*_BOOLEAN_COERCION_FIELDS, mode="before")
    @classmethod
    def _normalize_booleans(cls, value: Any, info: ValidationInfo) -> bool:
        field_name = info.field_name
        assert field_name is not None
        default_value = cls.model_fields[field_name].default
        assert isinstance(default_value, bool)
        return _parse_bool_with_default(value, default=default_value)


def _apply_path_defaults(settings: AppSettings) -> AppSettings:
    updates: dict[str, Path] = {}
    for field_name, relative_default in _DATA_DIR_RELATIVE_DEFAULTS:
        if field_name in settings.model_fields_set:
            continue
        updates[field_name] = settings.data_dir / relative_default
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def _resolve_path_fields(settings: AppSettings) -> AppSettings:
    resolved_updates = {
        field_name: _resolve_path(getattr(settings, field_name))
        for field_name in _PATH_FIELDS
    }
    return settings.model_copy(update=resolved_updates)


def load_settings() -> AppSettings:
    settings = AppSettings()
    settings = _apply_path_defaults(settings)
    return _resolve_path_fields(settings)
