"""Tests for the incremental catalog loader."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable

import pytest

from app.config import DiscoveryConfig
from app.errors import UpstreamUnavailable
from app.loader import CatalogLoader, LoaderState
from app.models import CatalogPage, DiscoveryItem, Subject, SubjectKind, ViewState

SCROLL_DELAY = 0.02
PARKED_DELAY = 0.1


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


def make_item(item_id: int, **fields: Any) -> DiscoveryItem:
    fields.setdefault("posterPath", f"/{item_id}.jpg")
    fields.setdefault("releaseDate", "2020-01-01")
    return DiscoveryItem(id=item_id, mediaType="tv", name=f"Show {item_id}", **fields)


class FakeSource:
    """Page source keyed by subject name and page number."""

    def __init__(self, pages: dict[str, dict[int, list[DiscoveryItem]]], total_pages: dict[str, int]):
        self.pages = pages
        self.total_pages = total_pages
        self.calls: list[tuple[str, int]] = []
        self.completed_at: list[float] = []
        self.fail_once: set[tuple[str, int]] = set()
        self.raise_on: set[tuple[str, int]] = set()
        self.gates: dict[tuple[str, int], asyncio.Event] = {}

    def pages_fetched(self, name: str) -> list[int]:
        return [page for subject, page in self.calls if subject == name]

    async def __call__(self, subject: Subject, page: int) -> CatalogPage | None:
        key = (subject.name, page)
        self.calls.append(key)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        self.completed_at.append(time.monotonic())
        if key in self.raise_on:
            raise RuntimeError("boom")
        if key in self.fail_once:
            self.fail_once.discard(key)
            return None
        if subject.name not in self.pages:
            return None
        return CatalogPage(
            items=self.pages[subject.name].get(page, []),
            page=page,
            total_pages=self.total_pages[subject.name],
        )


class RecordingTrigger:
    def __init__(self) -> None:
        self.observed = 0
        self.disconnected = 0

    def observe(self) -> None:
        self.observed += 1

    def disconnect(self) -> None:
        self.disconnected += 1


def build_loader(
    source: FakeSource, config: DiscoveryConfig | None = None
) -> tuple[CatalogLoader, list[ViewState], RecordingTrigger]:
    views: list[ViewState] = []
    trigger = RecordingTrigger()
    loader = CatalogLoader(
        source,
        views.append,
        trigger=trigger,
        config=config,
        scroll_delay=SCROLL_DELAY,
        parked_delay=PARKED_DELAY,
    )
    return loader, views, trigger


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


STUDIO = Subject(kind=SubjectKind.STUDIO, name="Studio A")
OTHER = Subject(kind=SubjectKind.NETWORK, id=71, name="The CW")


def three_page_source() -> FakeSource:
    return FakeSource(
        {
            "Studio A": {
                1: [make_item(1), make_item(2)],
                2: [make_item(3), make_item(4)],
                3: [make_item(5)],
            },
            "The CW": {1: [make_item(70)]},
        },
        {"Studio A": 3, "The CW": 1},
    )


@pytest.mark.anyio("asyncio")
async def test_first_page_publishes_and_observes_trigger() -> None:
    source = three_page_source()
    loader, views, trigger = build_loader(source)

    await loader.select_subject(STUDIO)

    assert loader.state is LoaderState.READY
    assert trigger.observed == 1
    assert len(views) == 1
    assert views[0].subject_name == "Studio A"
    assert [item.id for item in views[0].items] == [1, 2]
    assert views[0].has_more is True
    assert loader.session is not None
    assert loader.session.current_page == 1


@pytest.mark.anyio("asyncio")
async def test_single_page_subject_is_exhausted() -> None:
    source = three_page_source()
    loader, views, trigger = build_loader(source)

    await loader.select_subject(OTHER)
    loader.trigger_visible()
    await asyncio.sleep(PARKED_DELAY * 2)

    assert loader.state is LoaderState.EXHAUSTED
    assert trigger.observed == 0
    assert views[-1].has_more is False
    assert source.pages_fetched("The CW") == [1]


@pytest.mark.anyio("asyncio")
async def test_loads_until_exhausted_with_throttled_gaps() -> None:
    source = three_page_source()
    loader, views, trigger = build_loader(source)

    await loader.select_subject(STUDIO)
    loader.trigger_visible()
    await wait_for(lambda: loader.state is LoaderState.EXHAUSTED)

    session = loader.session
    assert session is not None
    assert source.pages_fetched("Studio A") == [1, 2, 3]
    assert session.current_page == session.total_pages == 3
    assert [item.id for item in session.items] == [1, 2, 3, 4, 5]
    assert trigger.disconnected == 1
    assert views[-1].has_more is False
    # First load-more follows a scroll into view, the next one is the parked delay.
    gaps = [b - a for a, b in zip(source.completed_at, source.completed_at[1:])]
    assert gaps[0] >= SCROLL_DELAY
    assert gaps[1] >= PARKED_DELAY

    loader.trigger_visible()
    await asyncio.sleep(PARKED_DELAY * 2)
    assert source.pages_fetched("Studio A") == [1, 2, 3]


@pytest.mark.anyio("asyncio")
async def test_early_requests_coalesce_into_one_timer() -> None:
    source = three_page_source()
    loader, _, _ = build_loader(source)

    await loader.select_subject(STUDIO)
    loader.trigger_visible()
    session = loader.session
    assert session is not None
    handle = session.retry_handle
    assert handle is not None

    assert loader.request_more() is False
    loader.trigger_visible()
    assert loader.request_more() is False
    assert session.retry_handle is handle

    await wait_for(lambda: session.current_page == 2)
    assert source.pages_fetched("Studio A") == [1, 2]


@pytest.mark.anyio("asyncio")
async def test_scrolling_back_uses_short_delay() -> None:
    source = three_page_source()
    loader, _, _ = build_loader(source)

    await loader.select_subject(STUDIO)
    session = loader.session
    assert session is not None

    loader.trigger_visible()
    assert loader.required_delay(session) == SCROLL_DELAY
    await wait_for(lambda: session.current_page == 2)

    # Still visible after page 2: the user is parked at the bottom.
    assert loader.required_delay(session) == PARKED_DELAY
    assert session.retry_handle is not None

    session.cancel_retry()
    loader.trigger_hidden()
    loader.trigger_visible()
    assert loader.required_delay(session) == SCROLL_DELAY


@pytest.mark.anyio("asyncio")
async def test_page_of_known_items_still_advances_counter() -> None:
    source = FakeSource(
        {"Studio A": {1: [make_item(1), make_item(2)], 2: [make_item(2), make_item(1)], 3: []}},
        {"Studio A": 3},
    )
    loader, views, _ = build_loader(source)

    await loader.select_subject(STUDIO)
    session = loader.session
    assert session is not None
    loader.trigger_visible()
    await wait_for(lambda: session.current_page == 2)

    assert len(session.items) == 2
    assert len(views) == 1
    assert loader.state is LoaderState.READY


@pytest.mark.anyio("asyncio")
async def test_failed_page_is_retried_on_next_trigger() -> None:
    source = three_page_source()
    source.fail_once.add(("Studio A", 3))
    loader, views, _ = build_loader(source)

    await loader.select_subject(STUDIO)
    session = loader.session
    assert session is not None
    loader.trigger_visible()
    await wait_for(lambda: source.pages_fetched("Studio A") == [1, 2, 3] and not session.loading)

    assert session.current_page == 2
    assert loader.state is LoaderState.READY
    assert isinstance(loader.last_error, UpstreamUnavailable)
    assert [item.id for item in session.items] == [1, 2, 3, 4]
    error_view = views[-1]
    assert error_view.state == "error"
    assert error_view.has_more is True
    assert [item.id for item in error_view.items] == [1, 2, 3, 4]

    loader.trigger_hidden()
    loader.trigger_visible()
    await wait_for(lambda: loader.state is LoaderState.EXHAUSTED)

    assert source.pages_fetched("Studio A") == [1, 2, 3, 3]
    assert session.current_page == 3
    assert [item.id for item in views[-1].items] == [1, 2, 3, 4, 5]


@pytest.mark.anyio("asyncio")
async def test_fetch_exception_keeps_accepted_items() -> None:
    source = three_page_source()
    source.raise_on.add(("Studio A", 2))
    loader, _, _ = build_loader(source)

    await loader.select_subject(STUDIO)
    session = loader.session
    assert session is not None
    loader.trigger_visible()
    await wait_for(lambda: source.pages_fetched("Studio A") == [1, 2] and not session.loading)

    assert loader.state is LoaderState.READY
    assert session.current_page == 1
    assert isinstance(loader.last_error, RuntimeError)
    assert len(session.items) == 2


@pytest.mark.anyio("asyncio")
async def test_first_page_failure_publishes_empty_view() -> None:
    source = FakeSource({}, {})
    loader, views, trigger = build_loader(source)

    await loader.select_subject(STUDIO)

    assert loader.state is LoaderState.IDLE
    assert trigger.observed == 0
    assert views == [ViewState(subject_name="Studio A", items=[], has_more=False, state="idle")]
    loader.trigger_visible()
    await asyncio.sleep(PARKED_DELAY)
    assert source.pages_fetched("Studio A") == [1]


@pytest.mark.anyio("asyncio")
async def test_stale_response_is_discarded() -> None:
    source = three_page_source()
    gate = asyncio.Event()
    source.gates[("Studio A", 1)] = gate
    loader, views, _ = build_loader(source)

    first = asyncio.create_task(loader.select_subject(STUDIO))
    await wait_for(lambda: ("Studio A", 1) in source.calls)
    await loader.select_subject(OTHER)
    gate.set()
    await first

    assert loader.session is not None
    assert loader.session.subject == OTHER
    assert [view.subject_name for view in views] == ["The CW"]
    assert [item.id for item in loader.session.items] == [70]


@pytest.mark.anyio("asyncio")
async def test_new_subject_cancels_timer_and_trigger() -> None:
    source = three_page_source()
    loader, _, trigger = build_loader(source)

    await loader.select_subject(STUDIO)
    old_session = loader.session
    assert old_session is not None
    loader.trigger_visible()
    handle = old_session.retry_handle
    assert handle is not None

    await loader.select_subject(OTHER)

    assert handle.cancelled()
    assert old_session.retry_handle is None
    assert trigger.disconnected == 1
    await asyncio.sleep(PARKED_DELAY * 2)
    assert source.pages_fetched("Studio A") == [1]


@pytest.mark.anyio("asyncio")
async def test_in_flight_page_for_old_subject_does_not_mutate_new_session() -> None:
    source = three_page_source()
    gate = asyncio.Event()
    source.gates[("Studio A", 2)] = gate
    loader, views, _ = build_loader(source)

    await loader.select_subject(STUDIO)
    old_session = loader.session
    assert old_session is not None
    loader.trigger_visible()
    await wait_for(lambda: ("Studio A", 2) in source.calls)

    await loader.select_subject(OTHER)
    gate.set()
    assert loader.fetch_task is not None
    await loader.fetch_task

    assert old_session.current_page == 1
    assert loader.session is not None
    assert [item.id for item in loader.session.items] == [70]
    assert views[-1].subject_name == "The CW"


@pytest.mark.anyio("asyncio")
async def test_infinite_scroll_disabled_stops_after_first_page() -> None:
    source = three_page_source()
    loader, views, trigger = build_loader(source, DiscoveryConfig(enable_infinite_scroll=False))

    await loader.select_subject(STUDIO)
    loader.trigger_visible()
    await asyncio.sleep(PARKED_DELAY * 2)

    assert loader.state is LoaderState.EXHAUSTED
    assert trigger.observed == 0
    assert views[-1].has_more is False
    assert source.pages_fetched("Studio A") == [1]


@pytest.mark.anyio("asyncio")
async def test_view_partitions_and_filters_but_storage_keeps_arrival_order() -> None:
    source = FakeSource(
        {
            "Studio A": {
                1: [
                    DiscoveryItem(id=1, mediaType="tv", name="No Poster"),
                    make_item(2),
                    make_item(3, genreIds=[10767]),
                    make_item(4),
                ]
            }
        },
        {"Studio A": 1},
    )
    loader, views, _ = build_loader(source)

    await loader.select_subject(STUDIO)

    assert loader.session is not None
    assert [item.id for item in loader.session.items] == [1, 2, 3, 4]
    assert [item.id for item in views[-1].items] == [2, 4, 1]


@pytest.mark.anyio("asyncio")
async def test_close_tears_down_session() -> None:
    source = three_page_source()
    loader, _, trigger = build_loader(source)

    await loader.select_subject(STUDIO)
    loader.trigger_visible()
    loader.close()

    assert loader.session is None
    assert loader.state is LoaderState.IDLE
    assert trigger.disconnected == 1
    await asyncio.sleep(PARKED_DELAY)
    assert source.pages_fetched("Studio A") == [1]
