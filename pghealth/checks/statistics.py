"""Statistics counters that runtime diagnostics depend on.

Counters such as index scans are kept per member and start from zero again
after ``pg_stat_reset()``. Runtime diagnostics therefore report the last
reset time alongside their findings, and `ClusterStatistics` resets the
counters on every member at once so a new observation window starts
cluster-wide.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from ..logger import get_logger

if TYPE_CHECKING:
    from ..infrastructure.postgres.cluster import ClusterConnection
    from ..infrastructure.postgres.member import MemberPool

logger = get_logger(__name__)

STATS_RESET_QUERY = "select stats_reset from pg_stat_database where datname = current_database()"
RESET_STATISTICS_QUERY = "select pg_stat_reset()"


async def alast_stats_reset(pool: MemberPool) -> datetime | None:
    """Return when statistics of the current database were last reset on this member."""
    return await pool.afetchval(STATS_RESET_QUERY)


def stats_reset_message(reset_at: datetime | None, now: datetime | None = None) -> str:
    if reset_at is None:
        return "Statistics have never been reset on this host"
    now = now or datetime.now(UTC)
    days = (now - reset_at).days
    return f"Last statistics reset on this host was {days} days ago ({reset_at.isoformat()})"


class ClusterStatistics:
    """Statistics maintenance on top of a `ClusterConnection`.

    Examples
    --------
    >>> statistics = ClusterStatistics(cluster)
    >>> await statistics.areset_statistics()
    True
    >>> reset_at = await statistics.alast_stats_reset()
    """

    __slots__ = ("_cluster",)

    def __init__(self, cluster: ClusterConnection) -> None:
        self._cluster = cluster

    async def areset_statistics(self) -> bool:
        """Reset statistics counters on every member concurrently.

        Returns
        -------
        bool
            True only if the reset succeeded on every member. Failures are
            logged per member and never raised.
        """
        members = self._cluster.members
        outcomes = await asyncio.gather(
            *(member.pool.afetchval(RESET_STATISTICS_QUERY) for member in members),
            return_exceptions=True,
        )

        succeeded = True
        for member, outcome in zip(members, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("Statistics reset failed on member", member=str(member), error=str(outcome))
                succeeded = False
            else:
                logger.debug("Statistics reset on member", member=str(member))
        return succeeded

    async def alast_stats_reset(self) -> datetime | None:
        """Return the last statistics reset time as seen on the current primary.

        Raises
        ------
        ClusterNotInitializedError
            If the cluster connection is not active.
        """
        return await alast_stats_reset(self._cluster.primary.pool)
