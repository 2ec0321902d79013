"""Catalogue of diagnostics and the interface used to execute them on one member.

Each `Diagnostic` carries where it must run and how per-member results are
merged. Most checks read catalog metadata that replication keeps identical
on every member, so running them once on the primary is enough. Checks based
on usage statistics differ per member and run across the whole cluster.

The SQL behind a diagnostic is supplied by the caller through a
`DiagnosticQuery`; `SqlDiagnosticQuery` covers the common "run one query,
map every row" case.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from .models import DbObjectFinding
from .reconcile import Finding, ReconciliationPolicy

if TYPE_CHECKING:
    from ..infrastructure.postgres.member import MemberPool


class ExecutionTopology(StrEnum):
    ON_PRIMARY = "on_primary"
    ACROSS_CLUSTER = "across_cluster"


class Diagnostic(StrEnum):
    BLOATED_INDEXES = "bloated_indexes"
    BLOATED_TABLES = "bloated_tables"
    DUPLICATED_INDEXES = "duplicated_indexes"
    FOREIGN_KEYS_WITHOUT_INDEX = "foreign_keys_without_index"
    INDEXES_WITH_NULL_VALUES = "indexes_with_null_values"
    INTERSECTED_INDEXES = "intersected_indexes"
    INVALID_INDEXES = "invalid_indexes"
    TABLES_WITH_MISSING_INDEXES = "tables_with_missing_indexes"
    TABLES_WITHOUT_PRIMARY_KEY = "tables_without_primary_key"
    UNUSED_INDEXES = "unused_indexes"
    TABLES_WITHOUT_DESCRIPTION = "tables_without_description"
    COLUMNS_WITHOUT_DESCRIPTION = "columns_without_description"
    COLUMNS_WITH_JSON_TYPE = "columns_with_json_type"
    COLUMNS_WITH_SERIAL_TYPES = "columns_with_serial_types"
    FUNCTIONS_WITHOUT_DESCRIPTION = "functions_without_description"
    INDEXES_WITH_BOOLEAN = "indexes_with_boolean"
    NOT_VALID_CONSTRAINTS = "not_valid_constraints"
    BTREE_INDEXES_ON_ARRAY_COLUMNS = "btree_indexes_on_array_columns"
    SEQUENCE_OVERFLOW = "sequence_overflow"
    PRIMARY_KEYS_WITH_SERIAL_TYPES = "primary_keys_with_serial_types"
    DUPLICATED_FOREIGN_KEYS = "duplicated_foreign_keys"
    INTERSECTED_FOREIGN_KEYS = "intersected_foreign_keys"
    POSSIBLE_OBJECT_NAME_OVERFLOW = "possible_object_name_overflow"
    TABLES_NOT_LINKED_TO_OTHERS = "tables_not_linked_to_others"
    FOREIGN_KEYS_WITH_UNMATCHED_COLUMN_TYPE = "foreign_keys_with_unmatched_column_type"
    TABLES_WITH_ZERO_OR_ONE_COLUMN = "tables_with_zero_or_one_column"
    OBJECTS_NOT_FOLLOWING_NAMING_CONVENTION = "objects_not_following_naming_convention"

    @property
    def execution_topology(self) -> ExecutionTopology:
        if self in _ACROSS_CLUSTER:
            return ExecutionTopology.ACROSS_CLUSTER
        return ExecutionTopology.ON_PRIMARY

    @property
    def is_across_cluster(self) -> bool:
        return self.execution_topology is ExecutionTopology.ACROSS_CLUSTER

    @property
    def reconciliation_policy(self) -> ReconciliationPolicy:
        return _ACROSS_CLUSTER.get(self, ReconciliationPolicy.PRIMARY_ONLY)

    @property
    def is_runtime(self) -> bool:
        """Whether results depend on runtime statistics rather than static catalog metadata."""
        return self in _RUNTIME


_ACROSS_CLUSTER: dict[Diagnostic, ReconciliationPolicy] = {
    Diagnostic.TABLES_WITH_MISSING_INDEXES: ReconciliationPolicy.UNION_ACROSS_MEMBERS,
    Diagnostic.UNUSED_INDEXES: ReconciliationPolicy.INTERSECTION_ACROSS_MEMBERS,
}

_RUNTIME: frozenset[Diagnostic] = frozenset(
    {
        Diagnostic.BLOATED_INDEXES,
        Diagnostic.BLOATED_TABLES,
        Diagnostic.SEQUENCE_OVERFLOW,
        Diagnostic.TABLES_WITH_MISSING_INDEXES,
        Diagnostic.UNUSED_INDEXES,
    }
)


class DiagnosticQuery[T: Finding](Protocol):
    """Runs one diagnostic against a single member's pool."""

    @property
    def diagnostic(self) -> Diagnostic: ...

    async def aexecute(self, pool: MemberPool) -> list[T]: ...


@dataclass(frozen=True, slots=True)
class SqlDiagnosticQuery:
    """Diagnostic backed by a single SQL query whose rows become `DbObjectFinding` values.

    Every row must have an ``object_name`` column.

    Examples
    --------
    >>> query = SqlDiagnosticQuery(
    ...     diagnostic=Diagnostic.UNUSED_INDEXES,
    ...     sql=unused_indexes_sql,
    ...     object_type="index",
    ...     args=("public",),
    ... )
    >>> unused = await ClusterCheck(cluster).arun(query)
    """

    diagnostic: Diagnostic
    sql: str
    object_type: str
    args: tuple[object, ...] = ()
    timeout: float | None = None
    row_mapper: Callable[[Mapping[str, Any], str], DbObjectFinding] = field(default=DbObjectFinding.from_row)

    async def aexecute(self, pool: MemberPool) -> list[DbObjectFinding]:
        rows = await pool.afetch(self.sql, *self.args, timeout=self.timeout)
        return [self.row_mapper(row, self.object_type) for row in rows]
