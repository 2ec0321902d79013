"""Health diagnostics for replicated PostgreSQL clusters."""

from .checks import ClusterCheck, ClusterStatistics, Diagnostic, SqlDiagnosticQuery
from .infrastructure.postgres import (
    ClusterConnection,
    ClusterConnectionConfig,
    Endpoint,
    load_cluster_config,
    parse_topology,
)
from .logger import configure_logging, get_logger

__all__ = [
    "ClusterCheck",
    "ClusterConnection",
    "ClusterConnectionConfig",
    "ClusterStatistics",
    "Diagnostic",
    "Endpoint",
    "SqlDiagnosticQuery",
    "configure_logging",
    "get_logger",
    "load_cluster_config",
    "parse_topology",
]
