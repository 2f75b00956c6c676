"""Reaction to host navigation events."""

from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel, ConfigDict

from .config import DiscoveryConfig, Settings
from .errors import NotReady
from .loader import CatalogLoader, Publisher
from .models import Subject, SubjectKind, ViewState
from .services.discovery import DiscoveryService
from .utils import ReadinessProbe, wait_until_ready

logger = logging.getLogger(__name__)


class SubjectSelected(BaseModel):
    """Emitted by the host whenever a person, studio or network page opens."""

    model_config = ConfigDict(frozen=True)

    kind: SubjectKind
    id: int | None = None
    display_name: str

    def to_subject(self) -> Subject:
        return Subject(kind=self.kind, id=self.id, name=self.display_name)


class DiscoveryNavigator:
    """Routes :class:`SubjectSelected` events to the right discovery flow.

    Person pages get a one-shot ranked filmography; studio and network pages
    start a new incremental loader session. Every landing is handled, a
    revisit of the same subject included; only a duplicate arriving while the
    identical event is still settling or loading is dropped. A newer event
    supersedes one still being handled and the older one never publishes.
    """

    def __init__(
        self,
        settings: Settings,
        service: DiscoveryService,
        loader: CatalogLoader,
        publish: Publisher,
        *,
        ready: ReadinessProbe | None = None,
    ) -> None:
        self._settings = settings
        self._service = service
        self._loader = loader
        self._publish = publish
        self._ready = ready
        self._last_event: SubjectSelected | None = None
        # Event currently settling or loading, if any.
        self._in_progress: SubjectSelected | None = None

    @property
    def loader(self) -> CatalogLoader:
        return self._loader

    async def handle(self, event: SubjectSelected) -> bool:
        """Process ``event``; returns ``False`` when it was skipped."""

        if not self._settings.enabled:
            return False
        if self._in_progress is not None and event == self._in_progress:
            logger.debug("Ignoring duplicate %s event for %r", event.kind.value, event.display_name)
            return False
        self._last_event = event
        self._in_progress = event
        try:
            return await self._dispatch(event)
        finally:
            if self._in_progress is event:
                self._in_progress = None

    async def _dispatch(self, event: SubjectSelected) -> bool:
        if self._ready is not None:
            try:
                await wait_until_ready(
                    self._ready,
                    attempts=self._settings.ready_max_attempts,
                    interval=self._settings.ready_poll_seconds,
                )
            except NotReady as exc:
                logger.warning("Skipping %s page %r: %s", event.kind.value, event.display_name, exc)
                return False

        config = self._settings.discovery_config()
        # Give the host page time to finish rendering before we attach.
        await asyncio.sleep(self._settings.settle_delay_seconds)
        if event is not self._last_event:
            return False
        if event.kind is SubjectKind.PERSON:
            await self._show_person(event, config)
        else:
            await self._show_catalog(event, config)
        return True

    async def _show_person(self, event: SubjectSelected, config: DiscoveryConfig) -> None:
        if not self._settings.show_person_discovery or event.id is None:
            return
        self._loader.close()
        response = await self._service.person_filmography(event.id, config=config)
        if event is not self._last_event:
            logger.debug("Discarding filmography for superseded person %r", event.display_name)
            return
        items = response.credits if response is not None else []
        if response is None:
            logger.info("No credits found for %r", event.display_name)
        self._publish(
            ViewState(subject_name=event.display_name, items=items, has_more=False, state="ready")
        )

    async def _show_catalog(self, event: SubjectSelected, config: DiscoveryConfig) -> None:
        if not self._settings.show_studio_discovery:
            return
        await self._loader.select_subject(event.to_subject(), config)
