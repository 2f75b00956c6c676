"""Client for the Jellyseerr/Overseerr API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import ConfigurationMissing, DiscoveryError, UpstreamUnavailable
from ..models import (
    CatalogPage,
    PersonCreditSet,
    PersonDetails,
    StudioDetails,
    SubjectKind,
    SubjectMatch,
)
from ..networks import find_network_id
from ..normalizer import normalize_catalog_items, normalize_credits

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class JellyseerrClient:
    """Thin wrapper around the Jellyseerr HTTP API.

    Every public method swallows upstream failures after logging them and
    returns ``None`` (or an empty list) so callers degrade to partial data.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._max_retries = settings.upstream_retries

    def _base_url(self) -> str:
        base_url = self._settings.jellyseerr_url
        if not base_url:
            raise ConfigurationMissing("Jellyseerr URL is not configured")
        return base_url

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"{self._settings.app_name} (seerr-discovery)",
        }
        if self._settings.jellyseerr_api_key:
            headers["X-Api-Key"] = self._settings.jellyseerr_api_key
        return headers

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET ``path``, retrying transient failures with a short backoff."""

        url = f"{self._base_url()}{API_PREFIX}{path}"
        attempt = 0
        while True:
            try:
                response = await self._client.get(url, params=params, headers=self._headers())
            except httpx.HTTPError as exc:
                attempt += 1
                if attempt <= self._max_retries:
                    backoff = min(2 ** (attempt - 1), 5) * 0.25
                    logger.info(
                        "Transient error talking to Jellyseerr (%s). Retrying %s in %.2fs",
                        exc.__class__.__name__,
                        path,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise UpstreamUnavailable(f"{path}: {exc}") from exc

            if 500 <= response.status_code < 600 and attempt < self._max_retries:
                attempt += 1
                backoff = min(2 ** (attempt - 1), 5) * 0.25
                logger.info(
                    "Jellyseerr %s for %s. Retrying in %.2fs",
                    response.status_code,
                    path,
                    backoff,
                )
                await asyncio.sleep(backoff)
                continue
            if not response.is_success:
                raise UpstreamUnavailable(
                    f"{path} returned {response.status_code}",
                    status_code=response.status_code,
                )
            return response

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request(path, params)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(f"{path} returned a non-JSON body") from exc

    async def test_connection(self) -> bool:
        try:
            await self._request("/status")
        except DiscoveryError as exc:
            logger.error("Jellyseerr connection test failed: %s", exc)
            return False
        logger.info("Jellyseerr connection test succeeded")
        return True

    async def get_person(self, person_id: int) -> PersonDetails | None:
        try:
            data = await self._get_json(f"/person/{person_id}")
            return PersonDetails.model_validate(data)
        except DiscoveryError as exc:
            logger.warning("Failed to get person %s: %s", person_id, exc)
        except ValidationError as exc:
            logger.warning("Unexpected person payload for %s: %s", person_id, exc)
        return None

    async def fetch_person_credits(self, person_id: int) -> dict[str, list[Any]] | None:
        """Return the raw ``cast``/``crew`` lists of a person's combined credits."""

        try:
            data = await self._get_json(f"/person/{person_id}/combined_credits")
        except DiscoveryError as exc:
            logger.warning("Failed to get person credits %s: %s", person_id, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Unexpected credits payload for person %s", person_id)
            return None
        cast = data.get("cast")
        crew = data.get("crew")
        return {
            "cast": cast if isinstance(cast, list) else [],
            "crew": crew if isinstance(crew, list) else [],
        }

    async def get_person_with_credits(self, person_id: int) -> PersonCreditSet:
        """Fetch person details and normalised credits concurrently."""

        person, raw_credits = await asyncio.gather(
            self.get_person(person_id), self.fetch_person_credits(person_id)
        )
        if raw_credits is None:
            return PersonCreditSet(person=person)
        return PersonCreditSet(
            person=person,
            cast=normalize_credits(raw_credits["cast"], "cast"),
            crew=normalize_credits(raw_credits["crew"], "crew"),
        )

    async def get_studio(self, studio_id: int) -> StudioDetails | None:
        try:
            data = await self._get_json(f"/studio/{studio_id}")
            return StudioDetails.model_validate(data)
        except DiscoveryError as exc:
            logger.warning("Failed to get studio %s: %s", studio_id, exc)
        except ValidationError as exc:
            logger.warning("Unexpected studio payload for %s: %s", studio_id, exc)
        return None

    async def fetch_catalog_page(
        self, subject_id: int, kind: SubjectKind, page: int = 1
    ) -> CatalogPage | None:
        """Return one normalised discovery page for a studio or network."""

        if kind is SubjectKind.STUDIO:
            path, param = "/discover/movies", "studio"
        elif kind is SubjectKind.NETWORK:
            path, param = "/discover/tv", "network"
        else:
            raise ValueError(f"Catalog pages are not available for {kind.value}")

        try:
            data = await self._get_json(path, {"page": page, param: subject_id})
        except DiscoveryError as exc:
            logger.warning(
                "Failed to discover by %s %s (page %s): %s", kind.value, subject_id, page, exc
            )
            return None
        if not isinstance(data, dict):
            logger.warning("Unexpected discovery payload for %s %s", kind.value, subject_id)
            return None

        items = normalize_catalog_items(data.get("results"), kind)
        return CatalogPage(
            items=items,
            page=_coerce_int(data.get("page"), default=page),
            total_pages=max(_coerce_int(data.get("totalPages"), default=1), 1),
            total_results=_coerce_int(data.get("totalResults"), default=len(items)),
        )

    async def discover_by_studio(self, studio_id: int, page: int = 1) -> CatalogPage | None:
        return await self.fetch_catalog_page(studio_id, SubjectKind.STUDIO, page)

    async def discover_by_network(self, network_id: int, page: int = 1) -> CatalogPage | None:
        return await self.fetch_catalog_page(network_id, SubjectKind.NETWORK, page)

    async def search_person(self, query: str) -> list[PersonDetails]:
        """Return people from the multi-search endpoint."""

        try:
            data = await self._get_json("/search", {"query": query, "page": 1})
        except DiscoveryError as exc:
            logger.warning("Failed to search person %r: %s", query, exc)
            return []

        people: list[PersonDetails] = []
        for entry in _results(data):
            if entry.get("mediaType") != "person":
                continue
            try:
                people.append(PersonDetails.model_validate(entry))
            except ValidationError:
                logger.debug("Skipping malformed person search result %r", entry.get("id"))
        return people

    async def search_studio(self, query: str) -> list[StudioDetails]:
        """Return companies matching ``query``.

        Multi-search does not return companies so the dedicated endpoint is used.
        """

        try:
            data = await self._get_json("/search/company", {"query": query})
        except DiscoveryError as exc:
            logger.warning("Failed to search studio %r: %s", query, exc)
            return []

        studios: list[StudioDetails] = []
        for entry in _results(data):
            try:
                studios.append(StudioDetails.model_validate(entry))
            except ValidationError:
                logger.debug("Skipping malformed company search result %r", entry.get("id"))
        logger.info("Found %s studios for query %r", len(studios), query)
        return studios

    def find_network_id(self, name: str) -> int | None:
        network_id = find_network_id(name)
        if network_id is None:
            logger.debug("No network ID found for %r", name)
        else:
            logger.info("Found network ID %s for %r", network_id, name)
        return network_id

    async def resolve_subject_by_name(self, name: str) -> SubjectMatch:
        """Match ``name`` against known networks and the company search."""

        network_id = self.find_network_id(name)
        studios = await self.search_studio(name)
        return SubjectMatch(
            studio=studios[0] if studios else None,
            network_id=network_id,
        )


def _results(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    results = data.get("results")
    if not isinstance(results, list):
        return []
    return [entry for entry in results if isinstance(entry, dict)]


def _coerce_int(value: Any, *, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
