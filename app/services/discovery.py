"""Person filmographies and studio/network catalogs assembled from Jellyseerr."""

from __future__ import annotations

import asyncio
import logging

from ..aggregator import merge_catalog_pages, merge_credits
from ..config import DiscoveryConfig, Settings
from ..errors import NoSubjectMatch
from ..filters import exclude_available, filter_talk_shows
from ..models import (
    CatalogPage,
    DiscoveryItem,
    PersonDiscoveryResponse,
    StudioDetails,
    StudioDiscoveryResponse,
    Subject,
    SubjectKind,
)
from .jellyseerr import JellyseerrClient

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Coordinates the gateway, aggregator and filters for each page type."""

    def __init__(self, settings: Settings, client: JellyseerrClient):
        self._settings = settings
        self._client = client

    @property
    def client(self) -> JellyseerrClient:
        return self._client

    def _config(self, config: DiscoveryConfig | None) -> DiscoveryConfig:
        return config or self._settings.discovery_config()

    async def person_filmography(
        self, person_id: int, *, config: DiscoveryConfig | None = None
    ) -> PersonDiscoveryResponse | None:
        """Return the merged, ranked credits for a person or ``None`` if unknown."""

        config = self._config(config)
        logger.info("Getting filmography for person %s", person_id)
        credits = await self._client.get_person_with_credits(person_id)
        if credits.person is None:
            return None

        merged = merge_credits(credits, max_results=config.max_results)
        if not config.include_library_items:
            merged = exclude_available(merged)
        merged = filter_talk_shows(
            merged, config.exclude_talk_shows, strict=config.strict_title_filter
        )

        hidden: set[str] = set()
        if not self._settings.show_cast_credits:
            hidden.add("cast")
        if not self._settings.show_crew_credits:
            hidden.add("crew")
        if hidden:
            merged = [item for item in merged if item.credit_type not in hidden]

        cast = [item for item in merged if item.credit_type == "cast"]
        crew = [item for item in merged if item.credit_type == "crew"]
        return PersonDiscoveryResponse(
            person=credits.person,
            credits=merged,
            cast=cast,
            crew=crew,
            total_results=len(merged),
        )

    async def search_person_filmography(
        self, name: str, *, config: DiscoveryConfig | None = None
    ) -> PersonDiscoveryResponse | None:
        logger.info("Searching for person %r", name)
        people = await self._client.search_person(name)
        if not people:
            return None
        return await self.person_filmography(people[0].id, config=config)

    async def studio_catalog(
        self, studio_id: int, page: int = 1, *, config: DiscoveryConfig | None = None
    ) -> StudioDiscoveryResponse | None:
        config = self._config(config)
        logger.info("Getting catalog for studio %s, page %s", studio_id, page)
        studio, catalog = await asyncio.gather(
            self._client.get_studio(studio_id),
            self._client.discover_by_studio(studio_id, page),
        )
        if studio is None and catalog is None:
            return None
        return self._catalog_response(studio, catalog, config, page=page)

    async def network_catalog(
        self, network_id: int, page: int = 1, *, config: DiscoveryConfig | None = None
    ) -> StudioDiscoveryResponse | None:
        config = self._config(config)
        logger.info("Getting catalog for network %s, page %s", network_id, page)
        catalog = await self._client.discover_by_network(network_id, page)
        if catalog is None:
            return None
        return self._catalog_response(None, catalog, config, page=page)

    async def search_catalog(
        self, name: str, page: int = 1, *, config: DiscoveryConfig | None = None
    ) -> StudioDiscoveryResponse:
        """Return the merged network + studio catalog page for ``name``.

        Raises :class:`NoSubjectMatch` when neither a network nor a studio
        matches the name.
        """

        config = self._config(config)
        logger.info("Searching for studio/network %r, page %s", name, page)
        match = await self._client.resolve_subject_by_name(name)
        if match.is_empty:
            raise NoSubjectMatch(f"No studio or network found matching {name!r}")

        studio: StudioDetails | None = None
        network_page: CatalogPage | None = None
        studio_page: CatalogPage | None = None

        if match.network_id is not None:
            studio = StudioDetails(id=match.network_id, name=name)
            network_page = await self._client.discover_by_network(match.network_id, page)
        if match.studio is not None:
            studio = studio or match.studio
            studio_page = await self._client.discover_by_studio(match.studio.id, page)

        merged = merge_catalog_pages(network_page, studio_page, page=page)
        items = self._apply_library_policy(merged.items, config)
        return StudioDiscoveryResponse(
            studio=studio,
            items=items,
            page=page,
            total_pages=merged.total_pages,
            total_results=merged.total_results,
        )

    async def fetch_subject_page(
        self, subject: Subject, page: int, *, config: DiscoveryConfig | None = None
    ) -> CatalogPage | None:
        """Page source used by the incremental loader.

        Talk-show exclusion is left to the loader's display pass so that the
        stored sequence keeps every accepted item.
        """

        config = self._config(config)
        if subject.kind is SubjectKind.PERSON:
            raise ValueError("Person subjects are not paginated")

        if subject.id is not None:
            catalog = await self._client.fetch_catalog_page(subject.id, subject.kind, page)
            if catalog is None:
                return None
            return catalog.model_copy(
                update={"items": self._apply_library_policy(catalog.items, config)}
            )

        try:
            response = await self.search_catalog(subject.name, page, config=config)
        except NoSubjectMatch as exc:
            logger.info("%s", exc)
            return None
        return CatalogPage(
            items=response.items,
            page=response.page,
            total_pages=response.total_pages,
            total_results=response.total_results,
        )

    def _catalog_response(
        self,
        studio: StudioDetails | None,
        catalog: CatalogPage | None,
        config: DiscoveryConfig,
        *,
        page: int,
    ) -> StudioDiscoveryResponse:
        items = catalog.items if catalog is not None else []
        items = self._apply_library_policy(items, config)
        return StudioDiscoveryResponse(
            studio=studio,
            items=items,
            page=catalog.page if catalog is not None else page,
            total_pages=catalog.total_pages if catalog is not None else 1,
            total_results=catalog.total_results if catalog is not None else len(items),
        )

    @staticmethod
    def _apply_library_policy(
        items: list[DiscoveryItem], config: DiscoveryConfig
    ) -> list[DiscoveryItem]:
        if config.include_library_items:
            return items
        return exclude_available(items)
