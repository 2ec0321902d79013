from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ...logger import get_logger
from .config import DEFAULT_PROBE_TIMEOUT_S
from .exceptions import ConfigurationError, ProbeError

if TYPE_CHECKING:
    from .member import MemberConnection

logger = get_logger(__name__)

PRIMARY_PROBE_QUERY = "select not pg_is_in_recovery()"


class PrimaryDetector:
    """Answers whether a member currently accepts writes.

    A member that is not in recovery is the primary. Every failure, including
    a timeout, surfaces as `ProbeError`; a failed probe never counts as
    "not primary". Each probe is bounded by ``timeout`` seconds so a hung
    member cannot hold up the others.
    """

    __slots__ = ("_timeout",)

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT_S) -> None:
        if timeout <= 0:
            msg = f"probe timeout must be positive, got {timeout}"
            raise ConfigurationError(msg)
        self._timeout = timeout

    @property
    def timeout(self) -> float:
        return self._timeout

    async def ais_primary(self, member: MemberConnection) -> bool:
        try:
            result = await asyncio.wait_for(
                member.pool.afetchval(PRIMARY_PROBE_QUERY, timeout=self._timeout),
                timeout=self._timeout,
            )
        except TimeoutError as exc:
            raise ProbeError(member.endpoint, f"timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise ProbeError(member.endpoint, f"{type(exc).__name__}: {exc}") from exc

        if not isinstance(result, bool):
            raise ProbeError(member.endpoint, f"unexpected probe result {result!r}")

        logger.debug("Primary probe completed", member=str(member.endpoint), is_primary=result)
        return result
