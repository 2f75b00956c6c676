"""Conversion of raw Jellyseerr records into :class:`DiscoveryItem` objects."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from .errors import MalformedRecord
from .models import CreditType, DiscoveryItem, MediaType, SubjectKind

logger = logging.getLogger(__name__)

# Studio discovery lists movies, network discovery lists series.
CATALOG_MEDIA_TYPES: dict[SubjectKind, MediaType] = {
    SubjectKind.STUDIO: "movie",
    SubjectKind.NETWORK: "tv",
}


def credit_media_type(raw: Mapping[str, Any]) -> MediaType:
    """Classify a person credit: movies carry ``title``, series do not."""

    return "movie" if raw.get("title") else "tv"


def normalize_record(
    raw: object,
    *,
    media_type: MediaType,
    credit_type: CreditType | None = None,
) -> DiscoveryItem:
    """Build a single item, raising :class:`MalformedRecord` on bad input."""

    if not isinstance(raw, Mapping):
        raise MalformedRecord(f"Expected a mapping, got {type(raw).__name__}")
    payload = dict(raw)
    payload["mediaType"] = media_type
    payload.pop("media_type", None)
    if credit_type is not None:
        payload["creditType"] = credit_type
    for list_field in ("genreIds", "genres"):
        if payload.get(list_field) is None:
            payload.pop(list_field, None)
    try:
        return DiscoveryItem.model_validate(payload)
    except ValidationError as exc:
        raise MalformedRecord(
            f"Invalid record {payload.get('id')!r}: {exc.error_count()} error(s)"
        ) from exc


def normalize_credit(raw: object, credit_type: CreditType) -> DiscoveryItem:
    media_type = credit_media_type(raw) if isinstance(raw, Mapping) else "movie"
    return normalize_record(raw, media_type=media_type, credit_type=credit_type)


def normalize_credits(
    records: Iterable[object] | None, credit_type: CreditType
) -> list[DiscoveryItem]:
    """Normalise a cast or crew list, dropping records that fail."""

    items: list[DiscoveryItem] = []
    for raw in records or ():
        try:
            items.append(normalize_credit(raw, credit_type))
        except MalformedRecord as exc:
            logger.debug("Dropping %s credit: %s", credit_type, exc)
    return items


def normalize_catalog_items(
    records: Iterable[object] | None, kind: SubjectKind
) -> list[DiscoveryItem]:
    """Normalise one discovery page, tagging every item with the endpoint kind."""

    media_type = CATALOG_MEDIA_TYPES[kind]
    items: list[DiscoveryItem] = []
    for raw in records or ():
        try:
            items.append(normalize_record(raw, media_type=media_type))
        except MalformedRecord as exc:
            logger.debug("Dropping %s catalog record: %s", kind.value, exc)
    return items
