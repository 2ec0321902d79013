"""structlog setup for pghealth.

Modules obtain loggers with `get_logger(__name__)`. Applications call
`configure_logging()` once at startup; settings come from ``PGHEALTH_LOG_*``
environment variables unless a `LoggingConfig` is passed.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Literal, cast

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from structlog.types import Processor

type BoundLogger = structlog.stdlib.BoundLogger
type LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"]


class LoggingConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PGHEALTH_LOG_", extra="forbid", frozen=True)

    level: LogLevel = Field(default="INFO")
    json_output: bool = Field(default=False)
    library_log_levels: dict[str, LogLevel] = Field(default_factory=lambda: {"asyncpg": "WARNING"})


def _processors(*, json_output: bool) -> list[Processor]:
    renderer: Processor = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(config: LoggingConfig | None = None) -> None:
    config = config or LoggingConfig()

    structlog.configure(
        processors=_processors(json_output=config.json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.level)

    for lib_name, lib_level in config.library_log_levels.items():
        logging.getLogger(lib_name).setLevel(lib_level)


def get_logger(name: str | None = None) -> BoundLogger:
    return cast(BoundLogger, structlog.get_logger(name))
