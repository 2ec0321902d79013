from __future__ import annotations

from typing import TYPE_CHECKING

from ..infrastructure.postgres.exceptions import PgHealthError

if TYPE_CHECKING:
    from ..infrastructure.postgres.endpoint import Endpoint
    from .diagnostic import Diagnostic


class CheckExecutionError(PgHealthError):
    """A diagnostic failed on one member; the whole cluster check is aborted."""

    def __init__(self, endpoint: Endpoint, diagnostic: Diagnostic, message: str) -> None:
        super().__init__(f"Diagnostic {diagnostic} failed on {endpoint}: {message}")
        self.endpoint = endpoint
        self.diagnostic = diagnostic
