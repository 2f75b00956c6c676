"""Merging of credit lists and catalog pages into deduplicated results."""

from __future__ import annotations

from typing import Iterable, MutableSet, Sequence

from .models import CatalogPage, DiscoveryItem, ItemKey, PersonCreditSet

ACTING_DEPARTMENT = "Acting"
DEFAULT_MAX_RESULTS = 50


def popularity(item: DiscoveryItem) -> float:
    return item.popularity or 0.0


def vote_count(item: DiscoveryItem) -> int:
    return item.vote_count or 0


def credit_rank(item: DiscoveryItem) -> tuple[float, int]:
    return (popularity(item), vote_count(item))


def dedupe(items: Iterable[DiscoveryItem]) -> list[DiscoveryItem]:
    """Return ``items`` with later duplicates of an identity key removed."""

    seen: set[ItemKey] = set()
    unique: list[DiscoveryItem] = []
    for item in items:
        if item.key in seen:
            continue
        seen.add(item.key)
        unique.append(item)
    return unique


def rank_by_popularity(items: Iterable[DiscoveryItem]) -> list[DiscoveryItem]:
    """Sort by popularity then vote count, both descending."""

    return sorted(items, key=credit_rank, reverse=True)


def merge_credits(
    credits: PersonCreditSet,
    *,
    known_for_department: str | None = None,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[DiscoveryItem]:
    """Combine cast and crew credits for a person page.

    Crew credits are only considered for people not primarily known for
    acting, and never duplicate a cast credit. The result is ranked and then
    cut to ``max_results`` when that is positive.
    """

    if known_for_department is None and credits.person is not None:
        known_for_department = credits.person.known_for_department

    combined = dedupe(credits.cast)
    if known_for_department != ACTING_DEPARTMENT:
        seen = {item.key for item in combined}
        for item in credits.crew:
            if item.key in seen:
                continue
            seen.add(item.key)
            combined.append(item)

    ranked = rank_by_popularity(combined)
    if max_results > 0 and len(ranked) > max_results:
        ranked = ranked[:max_results]
    return ranked


def merge_catalog_pages(
    network_page: CatalogPage | None,
    studio_page: CatalogPage | None,
    *,
    page: int = 1,
) -> CatalogPage:
    """Merge a network page with a studio page for the same subject name.

    Network items come first and studio items only fill in unseen keys. The
    page counts follow the network when it returned anything, otherwise the
    studio. The merged list is re-ranked by popularity.
    """

    merged: list[DiscoveryItem] = []
    seen: set[ItemKey] = set()
    total_results = 0
    total_pages = 1

    if network_page is not None:
        accept_new(merged, seen, network_page.items)
        total_results = network_page.total_results
        total_pages = network_page.total_pages

    if studio_page is not None:
        accept_new(merged, seen, studio_page.items)
        if total_results == 0:
            total_results = studio_page.total_results
            total_pages = studio_page.total_pages

    merged.sort(key=popularity, reverse=True)
    return CatalogPage(
        items=merged,
        page=page,
        total_pages=max(total_pages, 1),
        total_results=total_results or len(merged),
    )


def accept_new(
    accepted: list[DiscoveryItem],
    seen_keys: MutableSet[ItemKey],
    incoming: Sequence[DiscoveryItem],
) -> list[DiscoveryItem]:
    """Append the items of ``incoming`` whose keys were never accepted.

    Arrival order is kept and nothing already accepted moves. Returns the
    items that were added.
    """

    added: list[DiscoveryItem] = []
    for item in incoming:
        if item.key in seen_keys:
            continue
        seen_keys.add(item.key)
        accepted.append(item)
        added.append(item)
    return added
