"""Connections to every member of a PostgreSQL cluster and tracking of its primary.

Why track the primary continuously?
-----------------------------------
Failover and switchover move the writable role between hosts while the
process keeps running. Diagnostics that must see the writable node would
silently start querying a replica if the primary were resolved only once.

`ClusterConnection` therefore keeps one pool per member for its whole
lifetime and runs a background task that re-probes every member on a fixed
interval:

- exactly one member reports primary: the primary reference is swapped to it
- zero or several members report primary: the last known primary is kept
  and the anomaly is logged (split-brain and failover windows are tolerated)
- a probe fails on one member: the failure is logged and that member is
  skipped for the cycle; the loop keeps running until `aclose()`

Probes within a cycle run concurrently, each bounded by the probe timeout,
so one unreachable host cannot delay failover detection for the others.

Usage
-----
>>> async with ClusterConnection.from_config(config) as cluster:
...     in_recovery = await cluster.primary.pool.afetchval("select pg_is_in_recovery()")
...     for member in cluster.members:
...         ...
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING, Self

from ...logger import get_logger
from .config import DEFAULT_REFRESH_INTERVAL_S
from .enums import ClusterState, HealthStatus
from .exceptions import ClusterNotInitializedError, ConfigurationError
from .health import ClusterHealthResult, MemberHealthInfo
from .member import MemberConnection
from .pool import AsyncConnectionPool
from .primary import PrimaryDetector
from .topology import parse_topology
from .validators import refresh_interval_positive

if TYPE_CHECKING:
    import types
    from collections.abc import Awaitable, Callable, Sequence

    from .config import ClusterConnectionConfig

    type Sleeper = Callable[[float], Awaitable[None]]

logger = get_logger(__name__)


class PrimaryReference:
    """Swappable cell holding the member currently believed to be the primary.

    Reads and writes happen on the event loop with no ``await`` in between,
    so each operation is atomic with respect to other tasks and readers
    never wait for the refresh task.
    """

    __slots__ = ("_value",)

    def __init__(self, value: MemberConnection | None = None) -> None:
        self._value = value

    def get(self) -> MemberConnection | None:
        return self._value

    def set(self, value: MemberConnection) -> None:
        self._value = value

    def compare_and_set(self, expected: MemberConnection | None, new: MemberConnection) -> bool:
        """Replace the value only if it is still ``expected`` (compared by identity)."""
        if self._value is not expected:
            return False
        self._value = new
        return True


class ClusterConnection:
    """Pools to every cluster member plus a continuously refreshed primary.

    The member set is fixed at construction; a topology change requires a new
    `ClusterConnection`. Lifecycle: ``INITIALIZING -> ACTIVE -> CLOSED``.

    Attributes
    ----------
    members : tuple[MemberConnection, ...]
        Every member, in the order they were supplied.
    primary : MemberConnection
        The member currently believed to accept writes.
    """

    __slots__ = ("_detector", "_members", "_primary_ref", "_refresh_interval", "_refresh_task", "_sleep", "_state")

    def __init__(
        self,
        members: Sequence[MemberConnection],
        *,
        detector: PrimaryDetector | None = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL_S,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Create a cluster connection (not yet initialized).

        Parameters
        ----------
        members
            Connections to every member. Endpoints must be unique.
        detector
            Primary detector used for the initial probe and every refresh.
            Defaults to one bounded by ``DEFAULT_PROBE_TIMEOUT_S``.
        refresh_interval
            Seconds between two refresh cycles. Must be positive.
        sleep
            Awaitable used to wait between cycles. Tests replace it to step
            the refresh loop deterministically.

        Raises
        ------
        ConfigurationError
            If ``members`` is empty, contains duplicates, or the interval is
            not positive.
        """
        if not members:
            msg = "cluster connection requires at least one member"
            raise ConfigurationError(msg)
        if len(set(members)) != len(members):
            msg = f"cluster members must be unique, got {[str(m) for m in members]}"
            raise ConfigurationError(msg)

        self._members = tuple(members)
        self._detector = detector or PrimaryDetector()
        self._refresh_interval = refresh_interval_positive(refresh_interval)
        self._sleep = sleep
        self._primary_ref = PrimaryReference()
        self._refresh_task: asyncio.Task[None] | None = None
        self._state = ClusterState.INITIALIZING

    async def __aenter__(self) -> Self:
        await self.ainitialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if exc_type is not None and exc_val is not None:
            logger.error(
                "ClusterConnection exiting with exception",
                exc_type=exc_type.__name__,
                exc_val=str(exc_val),
            )
        await self.aclose()

    @classmethod
    def from_config(cls, config: ClusterConnectionConfig) -> Self:
        """Build one member pool per distinct host found in the configured URLs.

        Raises
        ------
        ConfigurationError
            If the URLs are malformed or contain no host at all.
        """
        host_urls = parse_topology(config.credentials.urls)
        if not host_urls:
            msg = f"No hosts found in connection urls {list(config.credentials.urls)}"
            raise ConfigurationError(msg)

        members = [
            MemberConnection(
                endpoint=host_url.endpoint,
                pool=AsyncConnectionPool(config.for_member(host_url.url), config.connect_retry),
            )
            for host_url in host_urls
        ]
        return cls(
            members,
            detector=PrimaryDetector(timeout=config.probe_timeout),
            refresh_interval=config.refresh_interval,
        )

    @property
    def state(self) -> ClusterState:
        return self._state

    @property
    def members(self) -> tuple[MemberConnection, ...]:
        return self._members

    @property
    def refresh_interval(self) -> float:
        return self._refresh_interval

    @property
    def primary(self) -> MemberConnection:
        """The member currently believed to be the primary.

        Callers that need the primary for a whole operation should read this
        once and keep the returned member.

        Raises
        ------
        ClusterNotInitializedError
            If the connection is not active.
        """
        primary = self._primary_ref.get()
        if self._state is not ClusterState.ACTIVE or primary is None:
            msg = f"Cluster connection is {self._state}. Call ainitialize() first."
            raise ClusterNotInitializedError(msg)
        return primary

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def ainitialize(self) -> None:
        """Open every member pool, locate the primary and start the refresh loop.

        Idempotent while active. On failure every pool opened so far is closed.

        Raises
        ------
        ProbeError
            If the primary probe fails on any member.
        ConfigurationError
            If no member reports itself as primary.
        ClusterNotInitializedError
            If the connection was already closed.
        """
        if self._state is ClusterState.ACTIVE:
            return
        if self._state is ClusterState.CLOSED:
            msg = "A closed cluster connection cannot be initialized again"
            raise ClusterNotInitializedError(msg)

        try:
            await self._aopen_pools()
            self._primary_ref.set(await self._alocate_initial_primary())
        except BaseException:
            await self._aclose_pools()
            raise

        self._state = ClusterState.ACTIVE
        logger.info(
            "Cluster connection initialized",
            primary=str(self._primary_ref.get()),
            member_count=len(self._members),
        )

        if len(self._members) >= 2:
            self._refresh_task = asyncio.create_task(self._arefresh_loop(), name="pghealth-primary-refresh")
        else:
            logger.debug("Single member cluster, primary refresh is not needed")

    async def aclose(self) -> None:
        """Stop the refresh loop and close every member pool. Idempotent."""
        if self._state is ClusterState.CLOSED:
            return
        self._state = ClusterState.CLOSED

        task, self._refresh_task = self._refresh_task, None
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        await self._aclose_pools()
        logger.info("Cluster connection closed")

    async def arefresh_primary(self) -> MemberConnection:
        """Run one refresh cycle and return the primary afterwards.

        Probe failures are logged and never raised from here.
        """
        results = await self._aprobe_all()

        primaries: list[MemberConnection] = []
        for member, result in zip(self._members, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Primary probe failed during refresh", member=str(member), error=str(result))
                continue
            if result:
                primaries.append(member)

        current = self._primary_ref.get()
        if len(primaries) == 1:
            candidate = primaries[0]
            if candidate != current and self._primary_ref.compare_and_set(current, candidate):
                logger.info("Primary switched", previous=str(current), current=str(candidate))
                _warn_if_listed_as_replica(candidate)
        elif not primaries:
            logger.warning("No primary found during refresh, keeping last known primary", primary=str(current))
        else:
            logger.warning(
                "Several members report primary, keeping last known primary",
                primary=str(current),
                candidates=[str(m) for m in primaries],
            )

        return self.primary

    async def ahealth_check(self) -> ClusterHealthResult:
        """Check the pool of every member.

        The cluster is UNHEALTHY if the primary's pool is unhealthy and
        DEGRADED if any other member's pool is.
        """
        primary = self.primary
        results = await asyncio.gather(*(m.pool.ahealth_check() for m in self._members))

        infos = tuple(
            MemberHealthInfo(
                host=member.endpoint.name,
                port=member.endpoint.port,
                is_primary=member == primary,
                **result.model_dump(exclude={"timestamp", "pool_utilization_pct"}),
            )
            for member, result in zip(self._members, results, strict=True)
        )
        healthy_count = sum(1 for info in infos if info.is_healthy())

        if not next(info for info in infos if info.is_primary).is_healthy():
            status = HealthStatus.UNHEALTHY
        elif healthy_count < len(infos):
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY

        return ClusterHealthResult(
            status=status,
            primary=str(primary),
            members=infos,
            healthy_member_count=healthy_count,
            total_member_count=len(infos),
        )

    async def _aopen_pools(self) -> None:
        results = await asyncio.gather(*(m.pool.ainitialize() for m in self._members), return_exceptions=True)
        for member, result in zip(self._members, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Member pool failed to initialize", member=str(member), error=str(result))
                raise result

    async def _alocate_initial_primary(self) -> MemberConnection:
        results = await self._aprobe_all()
        for result in results:
            if isinstance(result, BaseException):
                raise result

        primaries = [member for member, is_primary in zip(self._members, results, strict=True) if is_primary]
        if not primaries:
            msg = f"No primary found among supplied endpoints {[str(m) for m in self._members]}"
            raise ConfigurationError(msg)
        if len(primaries) > 1:
            logger.warning(
                "Several members report primary at startup, using the first one",
                candidates=[str(m) for m in primaries],
            )
        _warn_if_listed_as_replica(primaries[0])
        return primaries[0]

    async def _aprobe_all(self) -> list[bool | BaseException]:
        return await asyncio.gather(
            *(self._detector.ais_primary(member) for member in self._members),
            return_exceptions=True,
        )

    async def _arefresh_loop(self) -> None:
        while self._state is ClusterState.ACTIVE:
            await self._sleep(self._refresh_interval)
            if self._state is not ClusterState.ACTIVE:
                return
            try:
                await self.arefresh_primary()
            except Exception:
                logger.exception("Primary refresh cycle failed")

    async def _aclose_pools(self) -> None:
        results = await asyncio.gather(*(m.pool.aclose() for m in self._members), return_exceptions=True)
        for member, result in zip(self._members, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Member pool failed to close", member=str(member), error=str(result))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(state={self._state}, members={[str(m) for m in self._members]})"


def _warn_if_listed_as_replica(member: MemberConnection) -> None:
    if not member.endpoint.can_be_primary:
        logger.warning(
            "Primary located on a host listed only in replica urls",
            member=str(member),
        )
