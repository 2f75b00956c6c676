"""Application configuration models."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class DiscoveryConfig:
    """Read-only configuration snapshot captured when a session starts."""

    exclude_talk_shows: bool = True
    enable_infinite_scroll: bool = True
    max_results: int = 50
    strict_title_filter: bool = True
    include_library_items: bool = True


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Seerr Discovery", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8097, alias="PORT")
    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    jellyseerr_url: str | None = Field(default=None, alias="JELLYSEERR_URL")
    jellyseerr_api_key: str | None = Field(default=None, alias="JELLYSEERR_API_KEY")
    upstream_retries: int = Field(default=2, alias="UPSTREAM_RETRIES", ge=0, le=10)

    enabled: bool = Field(default=True, alias="ENABLED")
    max_results: int = Field(default=50, alias="MAX_RESULTS", ge=0, le=1_000)
    include_library_items: bool = Field(default=True, alias="INCLUDE_LIBRARY_ITEMS")
    exclude_talk_shows: bool = Field(default=True, alias="EXCLUDE_TALK_SHOWS")
    strict_title_filter: bool = Field(default=True, alias="STRICT_TITLE_FILTER")
    debug_mode: bool = Field(default=False, alias="DEBUG_MODE")

    show_person_discovery: bool = Field(default=True, alias="SHOW_PERSON_DISCOVERY")
    show_cast_credits: bool = Field(default=True, alias="SHOW_CAST_CREDITS")
    show_crew_credits: bool = Field(default=True, alias="SHOW_CREW_CREDITS")
    show_studio_discovery: bool = Field(default=True, alias="SHOW_STUDIO_DISCOVERY")
    enable_infinite_scroll: bool = Field(default=True, alias="ENABLE_INFINITE_SCROLL")

    show_media_status: bool = Field(default=True, alias="SHOW_MEDIA_STATUS")
    show_media_type_badge: bool = Field(default=True, alias="SHOW_MEDIA_TYPE_BADGE")
    show_ratings: bool = Field(default=True, alias="SHOW_RATINGS")
    show_year: bool = Field(default=True, alias="SHOW_YEAR")
    show_overview_on_hover: bool = Field(default=True, alias="SHOW_OVERVIEW_ON_HOVER")
    show_collection_badge: bool = Field(default=True, alias="SHOW_COLLECTION_BADGE")
    show_role_name: bool = Field(default=True, alias="SHOW_ROLE_NAME")

    scroll_delay_seconds: float = Field(
        default=1.0, alias="SCROLL_DELAY_SECONDS", ge=0
    )
    parked_delay_seconds: float = Field(
        default=4.0, alias="PARKED_DELAY_SECONDS", ge=0
    )
    settle_delay_seconds: float = Field(
        default=0.5, alias="SETTLE_DELAY_SECONDS", ge=0
    )
    ready_poll_seconds: float = Field(default=0.2, alias="READY_POLL_SECONDS", gt=0)
    ready_max_attempts: int = Field(
        default=40, alias="READY_MAX_ATTEMPTS", ge=1, le=1_000
    )

    @field_validator("jellyseerr_url", mode="before")
    @classmethod
    def _normalise_jellyseerr_url(cls, value: object) -> str | None:
        """Strip blanks and trailing slashes, rejecting non-http schemes."""

        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None
        parsed = urlparse(text)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("JELLYSEERR_URL must be a valid http or https address")
        return text.rstrip("/")

    @property
    def jellyseerr_configured(self) -> bool:
        return bool(self.jellyseerr_url)

    def discovery_config(self) -> DiscoveryConfig:
        """Return the snapshot consumed by discovery sessions."""

        return DiscoveryConfig(
            exclude_talk_shows=self.exclude_talk_shows,
            enable_infinite_scroll=self.enable_infinite_scroll,
            max_results=self.max_results,
            strict_title_filter=self.strict_title_filter,
            include_library_items=self.include_library_items,
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
