"""Diagnostics executed across a cluster and reconciled into one result."""

from .cluster import ClusterCheck
from .diagnostic import Diagnostic, DiagnosticQuery, ExecutionTopology, SqlDiagnosticQuery
from .exceptions import CheckExecutionError
from .models import DbObjectFinding
from .predicates import all_of, skip_below_threshold, skip_by_name
from .reconcile import (
    Finding,
    ReconciliationPolicy,
    intersection_across_members,
    primary_only,
    reconcile,
    union_across_members,
)
from .runner import MemberCheckRunner, MemberResult
from .statistics import (
    RESET_STATISTICS_QUERY,
    STATS_RESET_QUERY,
    ClusterStatistics,
    alast_stats_reset,
    stats_reset_message,
)

__all__ = [
    "RESET_STATISTICS_QUERY",
    "STATS_RESET_QUERY",
    "CheckExecutionError",
    "ClusterCheck",
    "ClusterStatistics",
    "DbObjectFinding",
    "Diagnostic",
    "DiagnosticQuery",
    "ExecutionTopology",
    "Finding",
    "MemberCheckRunner",
    "MemberResult",
    "ReconciliationPolicy",
    "alast_stats_reset",
    "all_of",
    "intersection_across_members",
    "primary_only",
    "reconcile",
    "skip_below_threshold",
    "skip_by_name",
    "stats_reset_message",
    "union_across_members",
]
