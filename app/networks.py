"""TV networks recognised by name and their TMDb network identifiers."""

from __future__ import annotations

KNOWN_NETWORKS: dict[str, int] = {
    "The CW": 71,
    "CW": 71,
    "NBC": 6,
    "CBS": 16,
    "ABC": 2,
    "Fox": 19,
    "HBO": 49,
    "HBO Max": 3186,
    "Netflix": 213,
    "Amazon": 1024,
    "Prime Video": 1024,
    "Amazon Prime Video": 1024,
    "Hulu": 453,
    "Disney+": 2739,
    "Disney Plus": 2739,
    "Apple TV+": 2552,
    "Apple TV Plus": 2552,
    "Peacock": 3353,
    "Paramount+": 4330,
    "Paramount Plus": 4330,
    "Showtime": 67,
    "Starz": 318,
    "AMC": 174,
    "FX": 88,
    "USA Network": 30,
    "TNT": 41,
    "TBS": 32,
    "Syfy": 77,
    "Freeform": 1267,
    "BBC One": 4,
    "BBC Two": 332,
    "BBC": 4,
    "ITV": 9,
    "Channel 4": 26,
    "Sky": 1063,
    "Sky Atlantic": 1063,
    "Cartoon Network": 56,
    "Adult Swim": 80,
    "Comedy Central": 47,
    "MTV": 33,
    "Nickelodeon": 13,
    "Discovery": 64,
    "History": 65,
    "National Geographic": 43,
    "ESPN": 29,
    "Bravo": 74,
    "Lifetime": 34,
    "A&E": 129,
    "Hallmark": 384,
    "Hallmark Channel": 384,
    "Crunchyroll": 1112,
    "Max": 3186,
}

_CASEFOLDED: dict[str, int] = {
    name.casefold(): network_id for name, network_id in KNOWN_NETWORKS.items()
}


def find_network_id(name: str | None) -> int | None:
    """Return the TMDb network id for ``name``.

    An exact (case-insensitive) match wins. Otherwise the first known name
    that contains, or is contained in, ``name`` is used.
    """

    normalized = (name or "").strip().casefold()
    if not normalized:
        return None

    exact = _CASEFOLDED.get(normalized)
    if exact is not None:
        return exact

    for known, network_id in _CASEFOLDED.items():
        if known in normalized or normalized in known:
            return network_id
    return None
