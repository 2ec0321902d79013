from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.retry import retry_base

from ..config.retry import RetryConfig
from ..logger import get_logger

P = ParamSpec("P")
R = TypeVar("R")

logger = get_logger(__name__)


class RetryLogicError(RuntimeError): ...


def _log_before_sleep(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.warning(
        "Retrying after failure",
        function=getattr(retry_state.fn, "__qualname__", repr(retry_state.fn)),
        attempt=retry_state.attempt_number,
        error=str(outcome.exception()) if outcome is not None else None,
        sleep_s=retry_state.upcoming_sleep,
    )


class Retry:
    """Decorator retrying a coroutine function according to a `RetryConfig`.

    The last exception is re-raised once attempts are exhausted.
    """

    def __init__(self, config: RetryConfig) -> None:
        self._config = config
        self._stop = stop_after_attempt(config.max_attempts)
        self._wait = wait_random_exponential(
            multiplier=config.multiplier,
            min=config.wait_min,
            max=config.wait_max,
            exp_base=config.exp_base,
        )
        self._retry_condition = self._build_retry_condition(config)

    @staticmethod
    def _build_retry_condition(config: RetryConfig) -> retry_base:
        if config.retry_on_exceptions:
            condition: retry_base = retry_if_exception_type(config.retry_on_exceptions)
        else:
            condition = retry_if_exception_type(Exception)

        if config.never_retry_on:
            condition = condition & retry_if_not_exception_type(config.never_retry_on)

        return condition

    def __call__(self, func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            async for attempt in AsyncRetrying(
                stop=self._stop,
                wait=self._wait,
                retry=self._retry_condition,
                before_sleep=_log_before_sleep,
                reraise=True,
            ):
                with attempt:
                    return await func(*args, **kwargs)

            raise RetryLogicError("Async retry loop completed without success or failure")

        return wrapper


def retry(config: RetryConfig | None = None) -> Retry:
    return Retry(config or RetryConfig())
