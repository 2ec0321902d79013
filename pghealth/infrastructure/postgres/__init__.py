"""PostgreSQL cluster connectivity with asyncpg.

This module provides:

- `parse_topology`: split multi-host URLs into one URL per member
- `AsyncConnectionPool`: connection pool for one member
- `PrimaryDetector`: probe whether a member accepts writes
- `ClusterConnection`: pools to every member plus a refreshed primary

Usage
-----
::

    config = load_cluster_config(
        {"credentials": {"urls": ["postgresql://h1:5432,h2:5432/app"], "user": "monitoring"}}
    )
    async with ClusterConnection.from_config(config) as cluster:
        primary = cluster.primary
        replicas = [m for m in cluster.members if m != primary]
"""

from .cluster import ClusterConnection, PrimaryReference
from .config import (
    DEFAULT_PROBE_TIMEOUT_S,
    DEFAULT_REFRESH_INTERVAL_S,
    ClusterConnectionConfig,
    ConnectionCredentials,
    MemberPoolConfig,
    MemberPoolSettings,
    MemberServerSettings,
    load_cluster_config,
)
from .endpoint import DEFAULT_PORT, Endpoint
from .enums import ClusterState, HealthStatus
from .exceptions import (
    ClusterNotInitializedError,
    ConfigurationError,
    PgHealthError,
    PoolNotInitializedError,
    ProbeError,
)
from .health import ClusterHealthResult, HealthCheckResult, MemberHealthInfo, PoolHealthBase
from .member import MemberConnection, MemberPool
from .pool import AsyncConnectionPool
from .primary import PRIMARY_PROBE_QUERY, PrimaryDetector
from .topology import (
    ROLE_PARAMETER,
    HostUrl,
    RoleBias,
    TargetRole,
    build_common_url_to_primary,
    parse_connection_url,
    parse_topology,
)

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_PROBE_TIMEOUT_S",
    "DEFAULT_REFRESH_INTERVAL_S",
    "PRIMARY_PROBE_QUERY",
    "ROLE_PARAMETER",
    "AsyncConnectionPool",
    "ClusterConnection",
    "ClusterConnectionConfig",
    "ClusterHealthResult",
    "ClusterNotInitializedError",
    "ClusterState",
    "ConfigurationError",
    "ConnectionCredentials",
    "Endpoint",
    "HealthCheckResult",
    "HealthStatus",
    "HostUrl",
    "MemberConnection",
    "MemberHealthInfo",
    "MemberPool",
    "MemberPoolConfig",
    "MemberPoolSettings",
    "MemberServerSettings",
    "PgHealthError",
    "PoolHealthBase",
    "PoolNotInitializedError",
    "PrimaryDetector",
    "PrimaryReference",
    "ProbeError",
    "RoleBias",
    "TargetRole",
    "build_common_url_to_primary",
    "load_cluster_config",
    "parse_connection_url",
    "parse_topology",
]
