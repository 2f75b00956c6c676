"""Exclusion policy and display ordering for discovery results."""

from __future__ import annotations

import re
from typing import Iterable

from .models import DiscoveryItem

# TMDb genre identifiers for Talk and News.
TALK_GENRE_IDS: frozenset[int] = frozenset({10767, 10763})
# Matched inside genre names.
TALK_GENRE_WORDS: tuple[str, ...] = ("talk", "news")

TALK_TITLE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\btonight show\b",
        r"\blate show\b",
        r"\blate night\b",
        r"\bdaily show\b",
        r"\btalk show\b",
        r"\bmorning show\b",
        r"\bawards?\b",
        r"\bemmy\b",
        r"\boscar\b",
        r"\bgolden globe\b",
        r"\bgrammys?\b",
        r"\bsag awards\b",
        r"\bbafta\b",
        r"\bcritics.?choice\b",
        r"\bpeople.?s choice\b",
        r"\bkelly clarkson show\b",
        r"\bellen\b.*\bshow\b",
        r"\bjimmy kimmel\b",
        r"\bjimmy fallon\b",
        r"\bstephen colbert\b",
        r"\bseth meyers\b",
        r"\bjames corden\b",
        r"\bconan\b",
        r"\bjohn oliver\b",
        r"\btrevor noah\b",
        r"\bwendy williams\b",
        r"\breal time with\b",
        r"\bdrew barrymore show\b",
        r"\bgood morning\b",
        r"\btoday show\b",
        r"\bthe view\b",
        r"\bthe talk\b",
        r"\blive with\b",
        r"\baccess hollywood\b",
        r"\bentertainment tonight\b",
        r"\bextra\b.*\btv\b",
    )
)


def has_talk_genre(item: DiscoveryItem) -> bool:
    if any(genre_id in TALK_GENRE_IDS for genre_id in item.genre_ids):
        return True
    names = " ".join(item.genres).casefold()
    return any(word in names for word in TALK_GENRE_WORDS)


def matches_talk_title(item: DiscoveryItem) -> bool:
    title = item.display_title
    return any(pattern.search(title) for pattern in TALK_TITLE_PATTERNS)


def is_talk_or_award_show(item: DiscoveryItem, *, strict: bool = True) -> bool:
    """Return ``True`` for talk, news or awards programming.

    Genre codes and names are always checked; ``strict`` adds the title heuristics.
    """

    if has_talk_genre(item):
        return True
    return strict and matches_talk_title(item)


def filter_talk_shows(
    items: Iterable[DiscoveryItem], exclude: bool = True, *, strict: bool = True
) -> list[DiscoveryItem]:
    if not exclude:
        return list(items)
    return [item for item in items if not is_talk_or_award_show(item, strict=strict)]


def exclude_available(items: Iterable[DiscoveryItem]) -> list[DiscoveryItem]:
    """Drop items that are already available in the media library."""

    return [item for item in items if not item.is_available]


def partition_complete(items: Iterable[DiscoveryItem]) -> list[DiscoveryItem]:
    """Stable partition with complete items (poster and date) first."""

    complete: list[DiscoveryItem] = []
    incomplete: list[DiscoveryItem] = []
    for item in items:
        (complete if item.is_complete else incomplete).append(item)
    return complete + incomplete


def display_order(
    items: Iterable[DiscoveryItem], exclude: bool = True, *, strict: bool = True
) -> list[DiscoveryItem]:
    """Return the order used for rendering incremental catalogs.

    The input sequence is not modified; storage order stays arrival order.
    """

    return filter_talk_shows(partition_complete(items), exclude, strict=strict)
