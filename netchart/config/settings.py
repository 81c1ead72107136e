"""
Netchart - Configuration Settings

Centralized configuration using Pydantic Settings for type-safe
environment variable handling with validation.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_hours(raw: str) -> list[int]:
    hours: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit() and int(part) > 0:
            hours.append(int(part))
    return hours


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Example: UPSTREAM_URL=http://komari:25774 sets upstream_url.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application Settings
    # =========================================================================
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    app_debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # =========================================================================
    # Upstream Telemetry (JSON-RPC)
    # =========================================================================
    upstream_url: str = Field(
        default="http://localhost:25774",
        description="Base URL of the monitoring backend"
    )
    upstream_rpc_path: str = Field(
        default="/api/rpc2",
        description="Path of the JSON-RPC endpoint"
    )
    upstream_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single upstream call"
    )
    upstream_max_count: int = Field(
        default=4000,
        ge=1,
        description="maxCount sent with every ping record query"
    )
    upstream_token: str | None = Field(
        default=None,
        description="Bearer token for the upstream API (optional)"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def upstream_rpc_url(self) -> str:
        """Full JSON-RPC endpoint URL."""
        base = (self.upstream_url or "").rstrip("/")
        return f"{base}{self.upstream_rpc_path}"

    # =========================================================================
    # Pipeline Constants
    # These are a fixed heuristic contract, tune only with a product decision
    # =========================================================================
    default_interval_ms: int = Field(
        default=60_000,
        description="Sample interval used when no positive deltas exist"
    )
    min_interval_ms: int = Field(
        default=1_000,
        description="Floor for the estimated sample interval"
    )
    offline_gap_multiplier: float = Field(
        default=1.5,
        gt=1.0,
        description="Gap (in sample intervals) above which a silence is offline"
    )
    peak_cut_window: int = Field(
        default=11,
        ge=2,
        description="Sliding window size of the peak-cut filter"
    )
    peak_cut_alpha: float = Field(
        default=0.3,
        gt=0.0,
        le=1.0,
        description="EWMA smoothing factor of the peak-cut filter"
    )
    realtime_poll_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Polling interval in realtime mode"
    )
    default_range_hours: int = Field(
        default=24,
        ge=1,
        description="Range used when the caller does not pick one"
    )

    # =========================================================================
    # Display Ranges
    # =========================================================================
    ping_preset_hours: str = Field(
        default="6,12,24,168",
        description="Comma-separated preset buckets for ping charts"
    )
    load_preset_hours: str = Field(
        default="4,24,168,720",
        description="Comma-separated preset buckets for load charts"
    )
    ping_record_preserve_hours: int | None = Field(
        default=None,
        description="Maximum ping retention in hours (optional)"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ping_preset_hours_list(self) -> list[int]:
        """Ping presets as a list."""
        return _parse_hours(self.ping_preset_hours)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def load_preset_hours_list(self) -> list[int]:
        """Load presets as a list."""
        return _parse_hours(self.load_preset_hours)

    # =========================================================================
    # API Configuration
    # =========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="API server bind address"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )
    api_token: str | None = Field(
        default=None,
        description="API token for chart endpoints (optional)"
    )
    metrics_token: str | None = Field(
        default=None,
        description="Token required to access /metrics (optional)"
    )
    cors_allow_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_allow_origins_list(self) -> list[str]:
        """Return CORS origins as a list."""
        if not self.cors_allow_origins:
            return []
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    # =========================================================================
    # Metrics Configuration
    # =========================================================================
    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics endpoint"
    )
    metrics_external_enabled: bool = Field(
        default=False,
        description="Enable standalone metrics server (binds separate port)"
    )
    metrics_port: int = Field(
        default=9100,
        description="Prometheus metrics port"
    )

    @model_validator(mode="after")
    def _validate_production(self) -> "Settings":
        """Enforce required settings in production."""
        if self.app_env == "production":
            missing: list[str] = []
            if not self.api_token:
                missing.append("API_TOKEN")
            if not self.metrics_token:
                missing.append("METRICS_TOKEN")
            if missing:
                raise ValueError(
                    "Missing required settings for production: "
                    + ", ".join(missing)
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-parsing environment on every call.
    """
    return Settings()


# Singleton settings instance for easy import
settings = get_settings()
