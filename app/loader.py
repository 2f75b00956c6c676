"""Incremental (infinite scroll) loading of studio and network catalogs."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Protocol

from .aggregator import accept_new
from .config import DiscoveryConfig
from .errors import UpstreamUnavailable
from .filters import display_order
from .models import CatalogPage, DiscoveryItem, ItemKey, Subject, ViewState

logger = logging.getLogger(__name__)

PageFetcher = Callable[[Subject, int], Awaitable[CatalogPage | None]]
Publisher = Callable[[ViewState], None]

DEFAULT_SCROLL_DELAY = 1.0
DEFAULT_PARKED_DELAY = 4.0


class LoaderState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    LOADING_MORE = "loading_more"
    EXHAUSTED = "exhausted"
    ERROR = "error"


class TriggerBinding(Protocol):
    """Viewport observer for the load-more trigger, owned by the presentation layer."""

    def observe(self) -> None: ...

    def disconnect(self) -> None: ...


class _DetachedTrigger:
    def observe(self) -> None:
        return None

    def disconnect(self) -> None:
        return None


@dataclass(eq=False)
class CatalogSession:
    """Mutable loading state for one studio or network."""

    subject: Subject
    config: DiscoveryConfig
    current_page: int = 0
    total_pages: int = 1
    items: list[DiscoveryItem] = field(default_factory=list)
    seen_keys: set[ItemKey] = field(default_factory=set)
    loading: bool = False
    last_fetch_at: float | None = None
    trigger_visible: bool = False
    # The trigger left the viewport since the last completed fetch...
    trigger_left: bool = False
    # ...and came back into view afterwards.
    trigger_cycled: bool = False
    retry_handle: asyncio.TimerHandle | None = None

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages

    def accept(self, incoming: list[DiscoveryItem]) -> list[DiscoveryItem]:
        return accept_new(self.items, self.seen_keys, incoming)

    def display_items(self) -> list[DiscoveryItem]:
        return display_order(
            self.items,
            self.config.exclude_talk_shows,
            strict=self.config.strict_title_filter,
        )

    def cancel_retry(self) -> None:
        if self.retry_handle is not None:
            self.retry_handle.cancel()
            self.retry_handle = None


class CatalogLoader:
    """Owns one :class:`CatalogSession` at a time and drives its page fetches.

    The presentation layer receives :class:`ViewState` snapshots through
    ``publish`` and reports trigger visibility through
    :meth:`trigger_visible` and :meth:`trigger_hidden`. Loads requested
    before the throttle delay has elapsed are deferred to a single timer.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        publish: Publisher,
        *,
        trigger: TriggerBinding | None = None,
        config: DiscoveryConfig | None = None,
        scroll_delay: float = DEFAULT_SCROLL_DELAY,
        parked_delay: float = DEFAULT_PARKED_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch_page = fetch_page
        self._publish = publish
        self._trigger: TriggerBinding = trigger or _DetachedTrigger()
        self._config = config or DiscoveryConfig()
        self._scroll_delay = scroll_delay
        self._parked_delay = parked_delay
        self._clock = clock
        self._session: CatalogSession | None = None
        self._state = LoaderState.IDLE
        self._observing = False
        self._fetch_task: asyncio.Task[None] | None = None
        self.last_error: Exception | None = None

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def session(self) -> CatalogSession | None:
        return self._session

    @property
    def fetch_task(self) -> asyncio.Task[None] | None:
        return self._fetch_task

    async def select_subject(
        self, subject: Subject, config: DiscoveryConfig | None = None
    ) -> None:
        """Start a fresh session for ``subject`` and load its first page."""

        self._teardown()
        session = CatalogSession(subject=subject, config=config or self._config)
        self._session = session
        self._state = LoaderState.INITIALIZING
        logger.debug("Loading catalog for %s %r", subject.kind.value, subject.name)
        await self._load_page(session, 1)

    def close(self) -> None:
        """Drop the current session and release its timer and trigger."""

        self._teardown()
        self._session = None
        self._state = LoaderState.IDLE

    def trigger_visible(self) -> None:
        session = self._session
        if session is None:
            return
        if not session.trigger_visible:
            session.trigger_visible = True
            if session.trigger_left:
                session.trigger_cycled = True
        self.request_more()

    def trigger_hidden(self) -> None:
        session = self._session
        if session is None or not session.trigger_visible:
            return
        session.trigger_visible = False
        session.trigger_left = True

    def required_delay(self, session: CatalogSession) -> float:
        """Short delay while the user scrolls, long while parked on the trigger."""

        return self._scroll_delay if session.trigger_cycled else self._parked_delay

    def request_more(self) -> bool:
        """Load the next page now if allowed, otherwise defer it.

        Returns ``True`` when a fetch was started by this call.
        """

        session = self._session
        if session is None or not self._can_load_more(session):
            return False
        if session.retry_handle is not None:
            return False

        remaining = self._remaining_delay(session)
        if remaining > 0:
            loop = asyncio.get_running_loop()
            session.retry_handle = loop.call_later(remaining, self._on_retry_timer, session)
            logger.debug("Throttling page %s for %.2fs", session.current_page + 1, remaining)
            return False

        session.loading = True
        self._state = LoaderState.LOADING_MORE
        self._fetch_task = asyncio.create_task(
            self._load_page(session, session.current_page + 1)
        )
        return True

    def _can_load_more(self, session: CatalogSession) -> bool:
        return (
            self._state is LoaderState.READY
            and session.config.enable_infinite_scroll
            and not session.loading
            and session.has_more
        )

    def _remaining_delay(self, session: CatalogSession) -> float:
        if session.last_fetch_at is None:
            return 0.0
        elapsed = self._clock() - session.last_fetch_at
        return max(0.0, self.required_delay(session) - elapsed)

    def _on_retry_timer(self, session: CatalogSession) -> None:
        session.retry_handle = None
        if session is not self._session:
            return
        self.request_more()

    async def _load_page(self, session: CatalogSession, page: int) -> None:
        session.loading = True
        error: Exception | None = None
        result: CatalogPage | None = None
        try:
            result = await self._fetch_page(session.subject, page)
        except Exception as exc:
            logger.exception("Fetching page %s for %r failed", page, session.subject.name)
            error = exc

        if session is not self._session:
            logger.debug(
                "Discarding page %s for superseded subject %r", page, session.subject.name
            )
            return

        session.loading = False
        session.last_fetch_at = self._clock()
        session.trigger_left = not session.trigger_visible
        session.trigger_cycled = False

        if result is None:
            self._fail(session, page, error)
            return
        self._accept_page(session, page, result)

    def _fail(self, session: CatalogSession, page: int, error: Exception | None) -> None:
        self.last_error = error or UpstreamUnavailable(
            f"No catalog page {page} for {session.subject.name!r}"
        )
        if page == 1:
            logger.warning("Initial catalog load failed for %r", session.subject.name)
            self._state = LoaderState.IDLE
            self._emit(session, has_more=False)
            return

        self._state = LoaderState.ERROR
        logger.warning(
            "Loading page %s for %r failed; keeping %s items",
            page,
            session.subject.name,
            len(session.items),
        )
        # The error snapshot keeps every accepted item; the next trigger retries.
        self._emit(session, has_more=session.has_more)
        self._state = LoaderState.READY

    def _accept_page(self, session: CatalogSession, page: int, result: CatalogPage) -> None:
        session.current_page = page
        session.total_pages = max(result.total_pages, page, 1)
        added = session.accept(result.items)
        logger.debug(
            "Page %s/%s for %r added %s items (total %s)",
            page,
            session.total_pages,
            session.subject.name,
            len(added),
            len(session.items),
        )

        more = session.has_more and session.config.enable_infinite_scroll
        if more:
            self._state = LoaderState.READY
            if not self._observing:
                self._observing = True
                self._trigger.observe()
        else:
            self._state = LoaderState.EXHAUSTED
            self._disconnect_trigger()

        if page == 1 or added or not more:
            self._emit(session, has_more=more)

        if more and session.trigger_visible:
            # Visibility callbacks may not fire again while the trigger stays in view.
            self.request_more()

    def _emit(self, session: CatalogSession, *, has_more: bool) -> None:
        self._publish(
            ViewState(
                subject_name=session.subject.name,
                items=session.display_items(),
                has_more=has_more,
                state=self._state.value,
            )
        )

    def _disconnect_trigger(self) -> None:
        if self._observing:
            self._observing = False
            self._trigger.disconnect()

    def _teardown(self) -> None:
        session = self._session
        if session is not None:
            session.cancel_retry()
        self._disconnect_trigger()
