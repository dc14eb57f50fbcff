"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CREWROUTE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Crew Route Optimizer API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Level applied to the crewroute loggers.")
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted run outputs.")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Mapping providers
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Google Maps Platform key. When unset, geocoding uses Nominatim and travel times use haversine estimates.",
    )
    google_geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    google_distance_matrix_url: str = "https://maps.googleapis.com/maps/api/distancematrix/json"
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    nominatim_user_agent: str = Field(
        default="crewroute-optimizer/1.0",
        description="User-Agent sent to Nominatim; its usage policy requires an identifying value.",
    )
    http_timeout_seconds: float = Field(default=15.0, gt=0.0)

    # Provider pacing (minimum spacing between consecutive calls)
    google_geocode_interval_seconds: float = Field(default=0.05, ge=0.0)
    nominatim_interval_seconds: float = Field(default=1.1, ge=1.0)
    matrix_batch_interval_seconds: float = Field(default=0.1, ge=0.0)
    matrix_batch_size: int = Field(default=25, ge=1, le=25)

    # Straight-line travel time estimate
    haversine_speed_kmh: float = Field(default=30.0, gt=0.0)
    haversine_overhead_minutes: int = Field(default=5, ge=0)

    matrix_failure_policy: Literal["degrade", "raise"] = Field(
        default="degrade",
        description="On distance-matrix provider errors either rebuild the matrix with haversine estimates or abort the run.",
    )

    geocode_cache_max_entries: int = Field(default=5000, ge=1)
    geocode_cache_ttl_seconds: Optional[float] = Field(default=7 * 24 * 3600.0, gt=0.0)

    # Optimization defaults
    default_start_time: str = Field(default="08:00", pattern=r"^\d{1,2}:\d{2}$")
    max_jobs_per_team: int = Field(default=6, ge=1)
    max_drive_minutes: int = Field(default=50, ge=1)
    daily_target_revenue: float = Field(default=1200.0, ge=0.0)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
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

    @field_validator("google_maps_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


settings = Settings()
