"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Laundry Route Dispatch API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level.")
    data_root: Path = Field(default=Path("data"), description="Root directory for run outputs.")
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL. Defaults to a SQLite file under data_root.",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements to the log.")

    timezone: str = Field(
        default="America/Lima",
        description="Local timezone used for day windows and scheduled stop times.",
    )
    route_start_hour: int = Field(default=8, ge=0, le=23, description="Local hour the first stop is scheduled.")
    route_date_anchor_hour_utc: int = Field(
        default=12,
        ge=0,
        le=23,
        description="UTC hour a route date is stored at, keeps the calendar day stable across timezones.",
    )
    base_hotel_minutes: int = Field(default=15, ge=0)
    base_service_minutes: int = Field(default=10, ge=0)
    minutes_per_bag: int = Field(default=1, ge=0)
    travel_minutes_between_hotels: int = Field(default=10, ge=0)
    default_zones: tuple[str, ...] = Field(
        default=("NORTE", "SUR", "ESTE", "OESTE", "CENTRO"),
        description="Zones dispatched when a request does not name any.",
    )

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "default_zones", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{(self.data_root / 'dispatch.db').as_posix()}"


settings = Settings()
