"""Entry point for the FastAPI-powered discovery service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .errors import NoSubjectMatch
from .loader import CatalogLoader, Publisher, TriggerBinding
from .models import (
    ClientConfigResponse,
    HealthCheckResponse,
    PersonDiscoveryResponse,
    StudioDiscoveryResponse,
)
from .navigation import DiscoveryNavigator
from .services.discovery import DiscoveryService
from .services.jellyseerr import JellyseerrClient
from .utils import ReadinessProbe

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = "/JellyseerrDiscovery"
VERSION = "1.0.0"

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    if settings.debug_mode:
        logging.getLogger("app").setLevel(logging.DEBUG)

    exit_stack = AsyncExitStack()
    http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(timeout=httpx.Timeout(20.0, connect=10.0))
    )
    client = JellyseerrClient(settings, http_client)
    fastapi_app.state.settings = settings
    fastapi_app.state.discovery_service = DiscoveryService(settings, client)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Actor filmographies and studio catalogs from Jellyseerr",
        version=VERSION,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_discovery_service(app: FastAPI) -> DiscoveryService:
    service = getattr(app.state, "discovery_service", None)
    if not isinstance(service, DiscoveryService):
        raise RuntimeError("Discovery service not initialised")
    return service


def get_app_settings(app: FastAPI) -> Settings:
    configured = getattr(app.state, "settings", None)
    if isinstance(configured, Settings):
        return configured
    return settings


def build_navigator(
    fastapi_app: FastAPI,
    publish: Publisher,
    *,
    trigger: TriggerBinding | None = None,
    ready: ReadinessProbe | None = None,
) -> DiscoveryNavigator:
    """Wire a navigator and its catalog loader to the app's discovery service.

    The presentation layer owns ``publish`` and ``trigger``; pages are fetched
    in-process through :meth:`DiscoveryService.fetch_subject_page`.
    """

    service = get_discovery_service(fastapi_app)
    current = get_app_settings(fastapi_app)
    loader = CatalogLoader(
        service.fetch_subject_page,
        publish,
        trigger=trigger,
        config=current.discovery_config(),
        scroll_delay=current.scroll_delay_seconds,
        parked_delay=current.parked_delay_seconds,
    )
    return DiscoveryNavigator(current, service, loader, publish, ready=ready)


def register_routes(fastapi_app: FastAPI) -> None:
    def _require_enabled() -> DiscoveryService:
        if not get_app_settings(fastapi_app).enabled:
            raise HTTPException(status_code=503, detail="Jellyseerr Discovery is disabled")
        return get_discovery_service(fastapi_app)

    # Static paths are registered before the ``{id}`` routes that would shadow them.
    @fastapi_app.get(f"{API_PREFIX}/person/search", response_model=PersonDiscoveryResponse)
    async def search_person_filmography(name: str = Query(min_length=1)):
        service = _require_enabled()
        response = await service.search_person_filmography(name)
        if response is None:
            raise HTTPException(status_code=404, detail=f"No person found matching '{name}'")
        return response

    @fastapi_app.get(f"{API_PREFIX}/person/{{person_id}}", response_model=PersonDiscoveryResponse)
    async def person_filmography(person_id: int):
        service = _require_enabled()
        response = await service.person_filmography(person_id)
        if response is None:
            raise HTTPException(status_code=404, detail=f"Person with ID {person_id} not found")
        return response

    @fastapi_app.get(f"{API_PREFIX}/studio/search", response_model=StudioDiscoveryResponse)
    async def search_studio_catalog(
        name: str = Query(min_length=1), page: int = Query(default=1, ge=1)
    ):
        service = _require_enabled()
        try:
            return await service.search_catalog(name, page)
        except NoSubjectMatch as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @fastapi_app.get(f"{API_PREFIX}/studio/{{studio_id}}", response_model=StudioDiscoveryResponse)
    async def studio_catalog(studio_id: int, page: int = Query(default=1, ge=1)):
        service = _require_enabled()
        response = await service.studio_catalog(studio_id, page)
        if response is None:
            raise HTTPException(status_code=404, detail=f"Studio with ID {studio_id} not found")
        return response

    @fastapi_app.get(f"{API_PREFIX}/network/{{network_id}}", response_model=StudioDiscoveryResponse)
    async def network_catalog(network_id: int, page: int = Query(default=1, ge=1)):
        service = _require_enabled()
        response = await service.network_catalog(network_id, page)
        if response is None:
            raise HTTPException(status_code=404, detail=f"Network with ID {network_id} not found")
        return response

    @fastapi_app.get(f"{API_PREFIX}/health", response_model=HealthCheckResponse)
    async def healthcheck():
        current = get_app_settings(fastapi_app)
        connected = False
        if current.jellyseerr_configured:
            connected = await get_discovery_service(fastapi_app).client.test_connection()
        return HealthCheckResponse(
            status="ok" if connected else "error",
            enabled=current.enabled,
            jellyseerr_configured=current.jellyseerr_configured,
            jellyseerr_connected=connected,
            error_message=(
                "Jellyseerr is not reachable"
                if current.jellyseerr_configured and not connected
                else None
            ),
            version=VERSION,
            exclude_talk_shows=current.exclude_talk_shows,
            debug_mode=current.debug_mode,
        )

    @fastapi_app.get(f"{API_PREFIX}/config", response_model=ClientConfigResponse)
    async def client_config():
        current = get_app_settings(fastapi_app)
        return ClientConfigResponse(
            enabled=current.enabled,
            jellyseerr_url=current.jellyseerr_url,
            exclude_talk_shows=current.exclude_talk_shows,
            debug_mode=current.debug_mode,
            show_person_discovery=current.show_person_discovery,
            show_cast_credits=current.show_cast_credits,
            show_crew_credits=current.show_crew_credits,
            show_studio_discovery=current.show_studio_discovery,
            enable_infinite_scroll=current.enable_infinite_scroll,
            show_media_status=current.show_media_status,
            show_media_type_badge=current.show_media_type_badge,
            show_ratings=current.show_ratings,
            show_year=current.show_year,
            show_overview_on_hover=current.show_overview_on_hover,
            show_collection_badge=current.show_collection_badge,
            show_role_name=current.show_role_name,
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
