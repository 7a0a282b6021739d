from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven configuration for the location picker."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Location Picker"
    LOG_LEVEL: str = "INFO"

    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))

    # ---- Geocode gateway (OpenStreetMap Nominatim)
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    GEOCODER_USER_AGENT: str = "geopicker/0.1 (location picker)"
    GEOCODER_ACCEPT_LANGUAGE: str = "en"
    GEOCODER_TIMEOUT_SECONDS: float = 6.0

    # ---- Interactive resolution
    SEARCH_DEBOUNCE_MS: int = 500
    SEARCH_MIN_CHARS: int = 3
    SEARCH_RESULT_LIMIT: int = 5
    LOOKUP_TIMEOUT_SECONDS: float = 10.0
    ABORT_STALE_LOOKUPS: bool = True

    # ---- Map defaults (Paris)
    DEFAULT_CENTER_LAT: float = 48.8566
    DEFAULT_CENTER_LON: float = 2.3522
    DEFAULT_ZOOM: int = 12
    FOCUS_ZOOM: int = 15

    # Optional fixed position served when no device geolocation is available.
    GEOLOCATION_FIX_LAT: float | None = None
    GEOLOCATION_FIX_LON: float | None = None

    @field_validator("NOMINATIM_BASE_URL", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return str(value or "").strip().rstrip("/")

    @field_validator("SEARCH_MIN_CHARS", "SEARCH_RESULT_LIMIT")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @property
    def debounce_seconds(self) -> float:
        return max(self.SEARCH_DEBOUNCE_MS, 0) / 1000.0

    @property
    def geolocation_fix(self) -> tuple[float, float] | None:
        if self.GEOLOCATION_FIX_LAT is None or self.GEOLOCATION_FIX_LON is None:
            return None
        return (self.GEOLOCATION_FIX_LAT, self.GEOLOCATION_FIX_LON)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


settings = get_settings()
