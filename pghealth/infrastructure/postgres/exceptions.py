from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .endpoint import Endpoint


class PgHealthError(Exception):
    """Base class for every error raised by pghealth."""


class ConfigurationError(PgHealthError, ValueError):
    """Invalid topology, settings, or a cluster without a reachable primary.

    Fatal: raised to the caller immediately and never retried. It is a
    ``ValueError`` so pydantic validators can raise it directly.
    """


class PoolNotInitializedError(PgHealthError):
    """A member pool was used before `ainitialize()`."""


class ClusterNotInitializedError(PgHealthError):
    """The cluster connection was used before `ainitialize()` or after `aclose()`."""


class ProbeError(PgHealthError):
    """The primary-detection probe failed on one member."""

    def __init__(self, endpoint: Endpoint, message: str) -> None:
        super().__init__(f"Primary probe failed on {endpoint}: {message}")
        self.endpoint = endpoint
