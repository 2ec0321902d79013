from __future__ import annotations

from .retry import Retry, RetryLogicError, retry

__all__ = [
    "Retry",
    "RetryLogicError",
    "retry",
]
