from __future__ import annotations

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import HealthStatus


class PoolHealthBase(BaseModel):
    """Pool health metrics shared by single-pool and per-member results."""

    model_config = ConfigDict(frozen=True)

    status: HealthStatus
    pool_size: int
    pool_max_size: int
    pool_idle_size: int = 0
    latency_s: float | None = None
    message: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pool_utilization_pct(self) -> float:
        """Pool utilization as percentage."""
        if self.pool_max_size == 0:
            return 0.0
        return (self.pool_size / self.pool_max_size) * 100

    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY


class HealthCheckResult(PoolHealthBase):
    """Result of a health check against a single member pool."""

    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def initializing(cls: type[Self], pool_max_size: int) -> Self:
        return cls(
            status=HealthStatus.INITIALIZING,
            pool_size=0,
            pool_max_size=pool_max_size,
            message="Pool not initialized",
        )

    @classmethod
    def unhealthy(cls: type[Self], pool_max_size: int, error: str) -> Self:
        return cls(
            status=HealthStatus.UNHEALTHY,
            pool_size=0,
            pool_max_size=pool_max_size,
            message=error,
        )

    @classmethod
    def healthy(
        cls: type[Self],
        pool_size: int,
        pool_max_size: int,
        latency_s: float,
        pool_idle_size: int,
    ) -> Self:
        return cls(
            status=HealthStatus.HEALTHY,
            pool_size=pool_size,
            pool_max_size=pool_max_size,
            latency_s=latency_s,
            message="Pool is healthy",
            pool_idle_size=pool_idle_size,
        )


class MemberHealthInfo(PoolHealthBase):
    """Health information for one cluster member."""

    host: str
    port: int
    is_primary: bool


class ClusterHealthResult(BaseModel):
    """Health of every member pool, plus which member is currently the primary.

    The cluster is UNHEALTHY when the primary's pool is unhealthy and
    DEGRADED when only some other member is.
    """

    model_config = ConfigDict(frozen=True)

    status: HealthStatus
    primary: str
    members: tuple[MemberHealthInfo, ...]
    healthy_member_count: int
    total_member_count: int

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    @property
    def is_operational(self) -> bool:
        """Check if the cluster can serve checks that need the primary."""
        return self.status != HealthStatus.UNHEALTHY
