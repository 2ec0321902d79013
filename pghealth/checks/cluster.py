"""Running a diagnostic on the cluster and reconciling per-member results.

A check reads the primary once when it starts and uses that member for its
whole duration, even if the refresh loop detects a failover meanwhile.
Targets run concurrently. If any of them fails the whole check fails:
a missing member would make an intersection look smaller than it is, so
partial results are never returned.

Exclusions (``keep``) are applied after reconciliation, so thresholds are
compared against the reconciled value rather than one member's.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ..logger import get_logger
from .diagnostic import ExecutionTopology
from .reconcile import ReconciliationPolicy, reconcile
from .runner import MemberCheckRunner, MemberResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ..infrastructure.postgres.cluster import ClusterConnection
    from ..infrastructure.postgres.member import MemberConnection
    from .diagnostic import Diagnostic, DiagnosticQuery
    from .reconcile import Finding

logger = get_logger(__name__)


class ClusterCheck:
    """Executes diagnostics against a `ClusterConnection`.

    Examples
    --------
    >>> check = ClusterCheck(cluster)
    >>> unused = await check.arun(unused_indexes_query, keep=skip_by_name("public.idx_keep_me"))
    """

    __slots__ = ("_cluster", "_runner")

    def __init__(self, cluster: ClusterConnection, runner: MemberCheckRunner | None = None) -> None:
        self._cluster = cluster
        self._runner = runner or MemberCheckRunner()

    async def arun[T: Finding](
        self,
        query: DiagnosticQuery[T],
        *,
        topology: ExecutionTopology | None = None,
        policy: ReconciliationPolicy | None = None,
        keep: Callable[[T], bool] | None = None,
    ) -> list[T]:
        """Run ``query`` on the members its topology requires and reconcile the results.

        Parameters
        ----------
        query
            The diagnostic to execute.
        topology
            Overrides the diagnostic's own execution topology.
        policy
            Overrides the diagnostic's own reconciliation policy.
            ``PRIMARY_ONLY`` always targets the primary alone.
        keep
            Predicate applied to the reconciled findings; findings for which it
            returns False are dropped.

        Raises
        ------
        CheckExecutionError
            If the diagnostic failed on any target member.
        ClusterNotInitializedError
            If the cluster connection is not active.
        """
        diagnostic = query.diagnostic
        topology = topology or diagnostic.execution_topology
        policy = policy or diagnostic.reconciliation_policy

        primary = self._cluster.primary
        targets: tuple[MemberConnection, ...]
        if topology is ExecutionTopology.ON_PRIMARY or policy is ReconciliationPolicy.PRIMARY_ONLY:
            targets = (primary,)
        else:
            targets = self._cluster.members

        logger.debug(
            "Running diagnostic",
            diagnostic=str(diagnostic),
            topology=str(topology),
            policy=str(policy),
            targets=[str(m) for m in targets],
        )
        results = await self._afan_out(query, targets)
        reconciled = reconcile(policy, [result.findings for result in results])

        if keep is None:
            return reconciled
        return [finding for finding in reconciled if keep(finding)]

    async def arun_all(
        self,
        queries: Iterable[DiagnosticQuery[Finding]],
        *,
        keep: Callable[[Finding], bool] | None = None,
    ) -> dict[Diagnostic, list[Finding]]:
        """Run several diagnostics one after another with their default topology and policy.

        The first failing diagnostic aborts the run.
        """
        results: dict[Diagnostic, list[Finding]] = {}
        for query in queries:
            results[query.diagnostic] = await self.arun(query, keep=keep)
        return results

    async def _afan_out[T: Finding](
        self,
        query: DiagnosticQuery[T],
        targets: tuple[MemberConnection, ...],
    ) -> list[MemberResult[T]]:
        outcomes = await asyncio.gather(
            *(self._runner.arun(query, member) for member in targets),
            return_exceptions=True,
        )

        results: list[MemberResult[T]] = []
        failures: list[Exception] = []
        for member, outcome in zip(targets, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(
                    "Diagnostic failed on member",
                    diagnostic=str(query.diagnostic),
                    member=str(member),
                    error=str(outcome),
                )
                failures.append(outcome)
            else:
                results.append(outcome)

        if failures:
            raise failures[0]
        return results
