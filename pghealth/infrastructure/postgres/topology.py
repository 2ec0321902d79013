"""Splitting multi-host connection URLs into one URL per cluster member.

A cluster is usually described by a libpq-style multi-host URL::

    postgresql://host-1:5432,host-2:5432/db_name?target_session_attrs=primary&sslmode=require

To monitor every member independently we need a connection that targets
exactly one host and can be opened whatever that host's current role is.
`parse_topology` produces, for each distinct ``host:port`` pair, a
single-host URL in which ``target_session_attrs`` is rewritten to ``any``.
All other query parameters are kept verbatim and in their original order.

Role values are case-sensitive. Legacy spellings (``master``, ``slave``,
``secondary``, ``preferSecondary``) are accepted and normalized to the
current asyncpg/libpq names.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .endpoint import DEFAULT_PORT, Endpoint
from .exceptions import ConfigurationError
from .validators import URL_PREFIXES, url_not_blank_and_valid, urls_not_empty_and_valid

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

ROLE_PARAMETER = "target_session_attrs"


class RoleBias(StrEnum):
    ANY = "any"
    PRIMARY = "primary"
    REPLICA = "replica"


class TargetRole(StrEnum):
    ANY = "any"
    PRIMARY = "primary"
    READ_WRITE = "read-write"
    STANDBY = "standby"
    READ_ONLY = "read-only"
    PREFER_STANDBY = "prefer-standby"

    @classmethod
    def normalize(cls, value: str) -> TargetRole:
        """Map a role value, including legacy spellings, to its current name."""
        legacy = _LEGACY_ROLES.get(value)
        if legacy is not None:
            return legacy
        try:
            return cls(value)
        except ValueError:
            msg = f"Unknown {ROLE_PARAMETER} value {value!r}"
            raise ConfigurationError(msg) from None

    @property
    def bias(self) -> RoleBias:
        if self in (TargetRole.PRIMARY, TargetRole.READ_WRITE):
            return RoleBias.PRIMARY
        if self in (TargetRole.STANDBY, TargetRole.READ_ONLY, TargetRole.PREFER_STANDBY):
            return RoleBias.REPLICA
        return RoleBias.ANY


_LEGACY_ROLES: dict[str, TargetRole] = {
    "master": TargetRole.PRIMARY,
    "slave": TargetRole.STANDBY,
    "secondary": TargetRole.STANDBY,
    "preferSecondary": TargetRole.PREFER_STANDBY,
}


@dataclass(frozen=True, slots=True)
class HostUrl:
    """A cluster member together with a connection URL targeting only that member."""

    endpoint: Endpoint
    url: str


@dataclass(frozen=True, slots=True)
class _ParsedUrl:
    prefix: str
    userinfo: str
    hosts: tuple[tuple[str, int], ...]
    path: str
    has_query: bool
    params: tuple[str, ...]
    role: TargetRole | None


def parse_connection_url(url: str) -> list[HostUrl]:
    """Split one (possibly multi-host) connection URL into single-host URLs.

    Raises
    ------
    ConfigurationError
        If the URL is blank, lacks the protocol prefix, or carries an invalid
        port or role value.
    """
    parsed = _parse(url)
    can_be_primary = parsed.role is None or parsed.role.bias is not RoleBias.REPLICA
    rewritten = _with_neutral_role(parsed.params)
    query = f"?{'&'.join(rewritten)}" if parsed.has_query else ""
    auth = f"{parsed.userinfo}@" if parsed.userinfo else ""

    result: list[HostUrl] = []
    seen: set[Endpoint] = set()
    for host, port in parsed.hosts:
        endpoint = Endpoint(host, port, can_be_primary=can_be_primary)
        if endpoint in seen:
            continue
        seen.add(endpoint)
        single_host_url = f"{parsed.prefix}{auth}{_format_host(host)}:{port}{parsed.path}{query}"
        result.append(HostUrl(endpoint=endpoint, url=single_host_url))
    return result


def parse_topology(urls: Iterable[str]) -> list[HostUrl]:
    """Parse every URL and return one `HostUrl` per distinct member.

    Members keep the order in which they first appear across ``urls``. When
    the same ``host:port`` appears more than once the first occurrence wins.
    """
    url_list = list(urls)
    urls_not_empty_and_valid(url_list)

    result: list[HostUrl] = []
    seen: set[Endpoint] = set()
    for url in url_list:
        for host_url in parse_connection_url(url):
            if host_url.endpoint in seen:
                continue
            seen.add(host_url.endpoint)
            result.append(host_url)
    return result


def build_common_url_to_primary(urls: Iterable[str], parameters: Mapping[str, str] | None = None) -> str:
    """Join the hosts of several URLs into one multi-host URL targeting the primary.

    The database name is taken from the first URL. Parameters are emitted in
    sorted order; ``target_session_attrs`` defaults to ``primary``.
    """
    url_list = list(urls)
    urls_not_empty_and_valid(url_list)
    parsed = [_parse(url) for url in url_list]

    hosts = sorted({f"{_format_host(host)}:{port}" for p in parsed for host, port in p.hosts})
    merged = {ROLE_PARAMETER: TargetRole.PRIMARY.value, **(parameters or {})}
    query = "&".join(f"{key}={merged[key]}" for key in sorted(merged))
    first = parsed[0]
    return f"{first.prefix}{','.join(hosts)}{first.path}?{query}"


def _parse(url: str) -> _ParsedUrl:
    url_not_blank_and_valid(url)
    prefix = next(p for p in URL_PREFIXES if url.startswith(p))
    rest = url[len(prefix) :]

    cut = len(rest)
    for separator in ("/", "?"):
        index = rest.find(separator)
        if index != -1:
            cut = min(cut, index)
    authority, tail = rest[:cut], rest[cut:]
    userinfo, _, hosts_part = authority.rpartition("@")
    path, question_mark, query = tail.partition("?")
    params = tuple(query.split("&")) if query else ()

    return _ParsedUrl(
        prefix=prefix,
        userinfo=userinfo,
        hosts=tuple(_split_host_port(segment) for segment in hosts_part.split(",") if segment.strip()),
        path=path,
        has_query=bool(question_mark),
        params=params,
        role=_extract_role(params),
    )


def _split_host_port(segment: str) -> tuple[str, int]:
    segment = segment.strip()
    if segment.startswith("["):
        host, _, remainder = segment[1:].partition("]")
        port_text = remainder.removeprefix(":")
    else:
        host, _, port_text = segment.partition(":")

    if not port_text:
        return host, DEFAULT_PORT
    if not port_text.isdigit():
        msg = f"Invalid port in host segment {segment!r}"
        raise ConfigurationError(msg)
    return host, int(port_text)


def _format_host(host: str) -> str:
    return f"[{host}]" if ":" in host else host


def _extract_role(params: tuple[str, ...]) -> TargetRole | None:
    role: TargetRole | None = None
    for param in params:
        key, _, value = param.partition("=")
        if key == ROLE_PARAMETER:
            role = TargetRole.normalize(value)
    return role


def _with_neutral_role(params: tuple[str, ...]) -> list[str]:
    return [
        f"{ROLE_PARAMETER}={TargetRole.ANY.value}" if param.partition("=")[0] == ROLE_PARAMETER else param
        for param in params
    ]
