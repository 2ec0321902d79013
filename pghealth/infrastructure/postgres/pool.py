"""Async connection pool bound to a single cluster member, using asyncpg.

For the whole cluster, use `ClusterConnection`, which owns one pool per member.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Self

import asyncpg
from asyncpg import Pool, Record
from profilist.timer import Timer

from ...logger import get_logger
from ...resilience.retry import retry
from .exceptions import PoolNotInitializedError
from .health import HealthCheckResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from asyncpg.pool import PoolConnectionProxy

    from ...config.retry import RetryConfig
    from .config import MemberPoolConfig

logger = get_logger(__name__)


class AsyncConnectionPool:
    """Async connection pool for one PostgreSQL host.

    Examples
    --------
    >>> async with AsyncConnectionPool(config) as pool:
    ...     in_recovery = await pool.afetchval("select pg_is_in_recovery()")
    """

    __slots__ = ("_config", "_connect_retry", "_init_lock", "_pool")

    def __init__(self, config: MemberPoolConfig, connect_retry: RetryConfig | None = None) -> None:
        self._config = config
        self._connect_retry = connect_retry
        self._pool: Pool[Record] | None = None
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self.ainitialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and exc_val is not None:
            logger.error(
                "AsyncConnectionPool context manager exiting with exception",
                exc_type=exc_type.__name__,
                exc_val=str(exc_val),
            )
        await self.aclose()

    @property
    def pool(self) -> Pool[Record]:
        """Access the underlying asyncpg pool.

        Raises
        ------
        PoolNotInitializedError
            If pool has not been initialized via `ainitialize()`.
        """
        if self._pool is None:
            msg = "Pool not initialized. Call ainitialize() first."
            raise PoolNotInitializedError(msg)
        return self._pool

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def ainitialize(self) -> None:
        """Create the asyncpg pool, retrying transient connection failures.

        Idempotent. The lock keeps concurrent callers from each creating a
        pool and leaking all but one of them.
        """
        async with self._init_lock:
            if self._pool is not None:
                return

            create = retry(self._connect_retry)(self._acreate_pool)
            self._pool = await create()
            logger.info("AsyncConnectionPool initialized", url=self._config.url, min_size=self._config.pool.min_size)

    async def _acreate_pool(self) -> Pool[Record]:
        return await asyncpg.create_pool(**self._config.to_pool_params())

    async def aclose(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("AsyncConnectionPool closed", url=self._config.url)

    async def ahealth_check(self) -> HealthCheckResult:
        """Check pool health by executing a simple query."""
        if self._pool is None:
            return HealthCheckResult.initializing(pool_max_size=self._config.pool.max_size)

        try:
            async with Timer(silent=True) as t, self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            latency_s = t.elapsed_seconds
        except Exception as e:
            return HealthCheckResult.unhealthy(
                pool_max_size=self._config.pool.max_size,
                error=str(e),
            )

        return HealthCheckResult.healthy(
            pool_size=self._pool.get_size(),
            pool_max_size=self._pool.get_max_size(),
            latency_s=latency_s,
            pool_idle_size=self._pool.get_idle_size(),
        )

    @asynccontextmanager
    async def aacquire(self) -> AsyncIterator[PoolConnectionProxy[Record]]:
        """Acquire a connection from the pool; it is released on exit."""
        async with self.pool.acquire() as conn:
            yield conn

    async def afetch(self, query: str, *args: object, timeout: float | None = None) -> list[Record]:
        """Execute a query and return all rows."""
        async with self.aacquire() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def afetchrow(self, query: str, *args: object, timeout: float | None = None) -> Record | None:
        """Execute a query and return the first row, or None."""
        async with self.aacquire() as conn:
            return await conn.fetchrow(query, *args, timeout=timeout)

    async def afetchval(self, query: str, *args: object, timeout: float | None = None) -> Any:
        """Execute a query and return the first value of the first row."""
        async with self.aacquire() as conn:
            return await conn.fetchval(query, *args, timeout=timeout)

    @property
    def pool_size(self) -> int:
        """Current number of connections in the pool."""
        if self._pool is None:
            return 0
        return self._pool.get_size()

    @property
    def pool_max_size(self) -> int:
        """Maximum pool size from configuration."""
        return self._config.pool.max_size
