from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..logger import get_logger
from .exceptions import CheckExecutionError
from .statistics import alast_stats_reset, stats_reset_message

if TYPE_CHECKING:
    from ..infrastructure.postgres.endpoint import Endpoint
    from ..infrastructure.postgres.member import MemberConnection
    from .diagnostic import DiagnosticQuery
    from .reconcile import Finding

logger = get_logger(__name__)


@dataclass(frozen=True)
class MemberResult[T: Finding]:
    """Findings of one diagnostic as reported by one member."""

    endpoint: Endpoint
    findings: list[T]


class MemberCheckRunner:
    """Executes a diagnostic against a single member.

    For diagnostics based on runtime statistics the member's last statistics
    reset is logged first, since a recent reset makes its counters unreliable.
    """

    __slots__ = ("_log_stats_reset",)

    def __init__(self, *, log_stats_reset: bool = True) -> None:
        self._log_stats_reset = log_stats_reset

    async def arun[T: Finding](self, query: DiagnosticQuery[T], member: MemberConnection) -> MemberResult[T]:
        """Run ``query`` on ``member``.

        Raises
        ------
        CheckExecutionError
            If the diagnostic fails on this member.
        """
        diagnostic = query.diagnostic
        if self._log_stats_reset and diagnostic.is_runtime:
            await self._alog_stats_reset(member)

        logger.debug("Executing diagnostic on member", diagnostic=str(diagnostic), member=str(member))
        try:
            findings = await query.aexecute(member.pool)
        except Exception as exc:
            raise CheckExecutionError(member.endpoint, diagnostic, f"{type(exc).__name__}: {exc}") from exc

        logger.debug(
            "Diagnostic finished on member",
            diagnostic=str(diagnostic),
            member=str(member),
            finding_count=len(findings),
        )
        return MemberResult(endpoint=member.endpoint, findings=findings)

    @staticmethod
    async def _alog_stats_reset(member: MemberConnection) -> None:
        try:
            reset_at = await alast_stats_reset(member.pool)
        except Exception as exc:
            logger.warning("Could not read statistics reset time", member=str(member), error=str(exc))
            return
        logger.info(stats_reset_message(reset_at), member=str(member))
