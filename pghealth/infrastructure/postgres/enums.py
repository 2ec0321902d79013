from enum import StrEnum


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    INITIALIZING = "initializing"


class ClusterState(StrEnum):
    INITIALIZING = "initializing"
    ACTIVE = "active"
    CLOSED = "closed"
