"""Pydantic models describing discovery payloads."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MediaType = Literal["movie", "tv"]
CreditType = Literal["cast", "crew"]
ItemKey = tuple[str, int]

MEDIA_STATUS_TEXT = {
    1: "Unknown",
    2: "Pending",
    3: "Processing",
    4: "Partially Available",
    5: "Available",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestInfo(_CamelModel):
    id: int
    status: int = 0


class MediaInfo(_CamelModel):
    """Availability information attached to an item by Jellyseerr."""

    id: int | None = None
    tmdb_id: int | None = None
    status: int = 1
    requests: list[RequestInfo] = Field(default_factory=list)

    @property
    def status_text(self) -> str:
        return MEDIA_STATUS_TEXT.get(self.status, "Unknown")

    @property
    def is_available(self) -> bool:
        return self.status == 5

    @property
    def is_requested(self) -> bool:
        return 2 <= self.status <= 4


class DiscoveryItem(_CamelModel):
    """A normalised movie or TV entry.

    Instances are frozen: the normaliser decides ``media_type`` once while
    building the item and nothing changes it afterwards.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: int
    media_type: MediaType = "movie"
    title: str | None = None
    name: str | None = None
    original_title: str | None = None
    original_name: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    release_date: str | None = None
    first_air_date: str | None = None
    vote_average: float | None = None
    vote_count: int | None = None
    popularity: float | None = None
    genre_ids: list[int] = Field(default_factory=list)
    # Genre names; detail payloads send objects, some clients send bare strings.
    genres: list[str] = Field(default_factory=list)
    media_info: MediaInfo | None = None
    character: str | None = None
    department: str | None = None
    job: str | None = None
    credit_type: CreditType | None = None

    @field_validator("genres", mode="before")
    @classmethod
    def _genre_names(cls, value: object) -> list[str]:
        if not isinstance(value, list):
            return []
        names: list[str] = []
        for genre in value:
            if isinstance(genre, str):
                names.append(genre)
            elif isinstance(genre, dict) and isinstance(genre.get("name"), str):
                names.append(genre["name"])
        return names

    @property
    def key(self) -> ItemKey:
        """Identity used for deduplication across every result set."""

        return (self.media_type, self.id)

    @property
    def display_title(self) -> str:
        return (
            self.title
            or self.name
            or self.original_title
            or self.original_name
            or "Unknown"
        )

    @property
    def release_year(self) -> str | None:
        date_value = self.release_date or self.first_air_date
        if not date_value:
            return None
        return date_value.split("-")[0] or None

    @property
    def is_complete(self) -> bool:
        """Complete items carry both a poster and a release/air date."""

        return bool(self.poster_path) and bool(self.release_date or self.first_air_date)

    @property
    def is_available(self) -> bool:
        return self.media_info is not None and self.media_info.is_available


class PersonDetails(_CamelModel):
    id: int
    name: str = ""
    biography: str | None = None
    birthday: str | None = None
    deathday: str | None = None
    place_of_birth: str | None = None
    profile_path: str | None = None
    known_for_department: str | None = None


class StudioDetails(_CamelModel):
    id: int
    name: str = ""
    description: str | None = None
    headquarters: str | None = None
    homepage: str | None = None
    logo_path: str | None = None
    origin_country: str | None = None
    parent_company: StudioDetails | None = None


class PersonCreditSet(BaseModel):
    """Cast and crew credits for one person lookup."""

    person: PersonDetails | None = None
    cast: list[DiscoveryItem] = Field(default_factory=list)
    crew: list[DiscoveryItem] = Field(default_factory=list)


class CatalogPage(_CamelModel):
    """One page of studio or network discovery results."""

    items: list[DiscoveryItem] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 1
    total_results: int = 0


class SubjectKind(str, Enum):
    PERSON = "person"
    STUDIO = "studio"
    NETWORK = "network"


class Subject(BaseModel):
    """The person, studio or network whose catalog is being displayed."""

    model_config = ConfigDict(frozen=True)

    kind: SubjectKind
    name: str
    id: int | None = None


class SubjectMatch(BaseModel):
    """Result of resolving a studio/network name against Jellyseerr."""

    studio: StudioDetails | None = None
    network_id: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.studio is None and self.network_id is None


class ViewState(_CamelModel):
    """Snapshot published to the presentation layer."""

    subject_name: str
    items: list[DiscoveryItem] = Field(default_factory=list)
    has_more: bool = False
    state: str = "idle"

    @property
    def total(self) -> int:
        return len(self.items)


class PersonDiscoveryResponse(_CamelModel):
    person: PersonDetails | None = None
    credits: list[DiscoveryItem] = Field(default_factory=list)
    cast: list[DiscoveryItem] = Field(default_factory=list)
    crew: list[DiscoveryItem] = Field(default_factory=list)
    total_results: int = 0


class StudioDiscoveryResponse(_CamelModel):
    studio: StudioDetails | None = None
    items: list[DiscoveryItem] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 1
    total_results: int = 0


class HealthCheckResponse(_CamelModel):
    status: str = "ok"
    enabled: bool = True
    jellyseerr_configured: bool = False
    jellyseerr_connected: bool = False
    error_message: str | None = None
    version: str = "1.0.0"
    exclude_talk_shows: bool = True
    debug_mode: bool = False


class ClientConfigResponse(_CamelModel):
    enabled: bool
    jellyseerr_url: str | None = None
    exclude_talk_shows: bool
    debug_mode: bool
    show_person_discovery: bool
    show_cast_credits: bool
    show_crew_credits: bool
    show_studio_discovery: bool
    enable_infinite_scroll: bool
    show_media_status: bool
    show_media_type_badge: bool
    show_ratings: bool
    show_year: bool
    show_overview_on_hover: bool
    show_collection_badge: bool
    show_role_name: bool
