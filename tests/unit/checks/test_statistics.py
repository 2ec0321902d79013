from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from pghealth.checks import RESET_STATISTICS_QUERY, STATS_RESET_QUERY, ClusterStatistics, stats_reset_message
from pghealth.infrastructure.postgres import ClusterConnection, ClusterNotInitializedError

from ..fakes import ManualSleep, fake_pool, make_member

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from pghealth.infrastructure.postgres import MemberConnection

PRIMARY_RESET_AT = datetime(2026, 3, 1, tzinfo=UTC)
REPLICA_RESET_AT = datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture
def members() -> list[MemberConnection]:
    result = [make_member(host, is_primary=host == "host-2") for host in ("host-1", "host-2", "host-3")]
    for member in result:
        pool = fake_pool(member)
        pool.responses[RESET_STATISTICS_QUERY] = None
        pool.responses[STATS_RESET_QUERY] = PRIMARY_RESET_AT if member.endpoint.name == "host-2" else REPLICA_RESET_AT
    return result


@pytest_asyncio.fixture
async def cluster(members: list[MemberConnection]) -> AsyncIterator[ClusterConnection]:
    async with ClusterConnection(members, sleep=ManualSleep()) as connection:
        yield connection


class TestResetStatistics:
    async def test_resets_every_member(self, cluster: ClusterConnection, members: list[MemberConnection]) -> None:
        assert await ClusterStatistics(cluster).areset_statistics() is True
        assert all(fake_pool(m).queries.count(RESET_STATISTICS_QUERY) == 1 for m in members)

    async def test_failure_on_one_member_is_reported(
        self, cluster: ClusterConnection, members: list[MemberConnection]
    ) -> None:
        """Verify a reset failing on one replica makes the cluster-wide reset fail.

        Arrange
        -------
        - host-3 rejects the reset with a permission error

        Act
        ---
        - Reset statistics on the cluster

        Assert
        ------
        - The result is False
        - The other members were still reset
        """
        fake_pool(members[2]).responses[RESET_STATISTICS_QUERY] = PermissionError("must be superuser")

        assert await ClusterStatistics(cluster).areset_statistics() is False
        assert fake_pool(members[0]).queries.count(RESET_STATISTICS_QUERY) == 1
        assert fake_pool(members[1]).queries.count(RESET_STATISTICS_QUERY) == 1


class TestLastStatsReset:
    async def test_reads_from_primary_only(self, cluster: ClusterConnection, members: list[MemberConnection]) -> None:
        assert await ClusterStatistics(cluster).alast_stats_reset() == PRIMARY_RESET_AT
        assert STATS_RESET_QUERY not in fake_pool(members[0]).queries
        assert STATS_RESET_QUERY not in fake_pool(members[2]).queries

    async def test_follows_primary_after_failover(
        self, cluster: ClusterConnection, members: list[MemberConnection]
    ) -> None:
        fake_pool(members[1]).set_primary(False)
        fake_pool(members[0]).set_primary(True)
        await cluster.arefresh_primary()

        assert await ClusterStatistics(cluster).alast_stats_reset() == REPLICA_RESET_AT

    async def test_never_reset(self, cluster: ClusterConnection, members: list[MemberConnection]) -> None:
        fake_pool(members[1]).responses[STATS_RESET_QUERY] = None

        reset_at = await ClusterStatistics(cluster).alast_stats_reset()

        assert reset_at is None
        assert stats_reset_message(reset_at) == "Statistics have never been reset on this host"

    async def test_requires_active_cluster(self, members: list[MemberConnection]) -> None:
        with pytest.raises(ClusterNotInitializedError):
            await ClusterStatistics(ClusterConnection(members)).alast_stats_reset()
