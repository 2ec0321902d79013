"""Argument validation shared by the topology parser and configuration models."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Collection

URL_PREFIXES = ("postgresql://", "postgres://")

MIN_PORT = 1
MAX_PORT = 65_535


def not_blank(value: str | None, argument_name: str) -> str:
    if value is None or not value.strip():
        msg = f"{argument_name} cannot be blank or empty"
        raise ConfigurationError(msg)
    return value


def url_not_blank_and_valid(url: str | None, argument_name: str = "url") -> str:
    url = not_blank(url, argument_name)
    if not url.startswith(URL_PREFIXES):
        msg = f"{argument_name} has invalid format, expected one of {URL_PREFIXES}"
        raise ConfigurationError(msg)
    return url


def urls_not_empty_and_valid(urls: Collection[str]) -> None:
    if not urls:
        msg = "urls have to contain at least one url"
        raise ConfigurationError(msg)
    for url in urls:
        url_not_blank_and_valid(url, "connection url")


def host_name_not_blank(host_name: str) -> str:
    return not_blank(host_name, "host name")


def port_in_acceptable_range(port: int) -> int:
    if not MIN_PORT <= port <= MAX_PORT:
        msg = f"port must be in the range from {MIN_PORT} to {MAX_PORT}, got {port}"
        raise ConfigurationError(msg)
    return port


def refresh_interval_positive(interval_s: float) -> float:
    if interval_s <= 0:
        msg = f"refresh interval must be positive, got {interval_s}"
        raise ConfigurationError(msg)
    return interval_s
