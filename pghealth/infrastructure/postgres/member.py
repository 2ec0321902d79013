from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .endpoint import Endpoint
    from .health import HealthCheckResult


class MemberPool(Protocol):
    """What the cluster layer needs from a member's connection pool.

    `AsyncConnectionPool` is the production implementation.
    """

    async def ainitialize(self) -> None: ...

    async def aclose(self) -> None: ...

    async def ahealth_check(self) -> HealthCheckResult: ...

    async def afetch(self, query: str, *args: object, timeout: float | None = None) -> list[Any]: ...

    async def afetchval(self, query: str, *args: object, timeout: float | None = None) -> Any: ...


@dataclass(frozen=True, slots=True)
class MemberConnection:
    """A cluster member and the pool used to query it.

    Equality and hashing use the endpoint only.
    """

    endpoint: Endpoint
    pool: MemberPool = field(compare=False)

    def __str__(self) -> str:
        return str(self.endpoint)
