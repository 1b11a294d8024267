"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - platform_fee_bps applies to NEW escrows only; existing ones keep their frozen rate

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trustgate.core.domain_types import (
    BPS_DENOMINATOR, DEFAULT_MAX_OFFSET_DEG, DEFAULT_OBFUSCATION_TTL_SECONDS,
    DEFAULT_PLATFORM_FEE_BPS, DEFAULT_RELEASE_WINDOW_HOURS,
    OBFUSCATED_ZOOM_CEILING, PRECISE_ZOOM_CEILING,
)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://trustgate:trustgate@db:5432/trustgate"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Persona sessions
    session_storage_key: str = "verbaac-auth-storage"
    role_event_history: int = 100

    # Escrow
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS
    release_window_hours: int = DEFAULT_RELEASE_WINDOW_HOURS

    @field_validator("platform_fee_bps")
    @classmethod
    def check_fee_bps(cls, v: int) -> int:
        if not 0 <= v <= BPS_DENOMINATOR:
            raise ValueError(f"platform_fee_bps must be within 0..{BPS_DENOMINATOR}")
        return v

    # Geo privacy
    geo_max_offset_deg: float = DEFAULT_MAX_OFFSET_DEG
    geo_obfuscated_zoom_cap: int = OBFUSCATED_ZOOM_CEILING
    geo_precise_zoom: int = PRECISE_ZOOM_CEILING
    # Defaults to one session lifetime
    obfuscation_ttl_seconds: int = DEFAULT_OBFUSCATION_TTL_SECONDS

    @field_validator("geo_max_offset_deg")
    @classmethod
    def check_offset(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("geo_max_offset_deg must be positive")
        return v

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
