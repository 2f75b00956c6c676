"""Utility helpers for the discovery service."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable

from .errors import NotReady

logger = logging.getLogger(__name__)

ReadinessProbe = Callable[[], bool | Awaitable[bool]]


async def wait_until_ready(
    probe: ReadinessProbe,
    *,
    attempts: int = 40,
    interval: float = 0.2,
    backoff: float = 1.0,
    max_interval: float = 5.0,
) -> None:
    """Poll ``probe`` until it reports ready.

    The wait between attempts starts at ``interval`` and is multiplied by
    ``backoff`` after each miss, capped at ``max_interval``. Raises
    :class:`NotReady` once ``attempts`` probes have failed.
    """

    delay = interval
    for attempt in range(1, attempts + 1):
        ready = probe()
        if inspect.isawaitable(ready):
            ready = await ready
        if ready:
            return
        if attempt == attempts:
            break
        logger.debug("Host not ready (attempt %s/%s), waiting %.2fs", attempt, attempts, delay)
        await asyncio.sleep(delay)
        delay = min(delay * backoff, max_interval)
    raise NotReady(f"Host not ready after {attempts} attempts")
