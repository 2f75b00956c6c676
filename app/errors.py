"""Exception types raised by the discovery engine."""

from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for recoverable discovery failures."""


class ConfigurationMissing(DiscoveryError):
    """No usable Jellyseerr endpoint has been configured."""


class UpstreamUnavailable(DiscoveryError):
    """The upstream service could not be reached or answered with an error."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedRecord(DiscoveryError):
    """A single raw record could not be normalised."""


class NoSubjectMatch(DiscoveryError):
    """Neither a studio nor a network matched the requested name."""


class NotReady(DiscoveryError):
    """The host application never became ready within the allowed attempts."""
