from __future__ import annotations

from dataclasses import dataclass, field

from .validators import host_name_not_blank, port_in_acceptable_range

DEFAULT_PORT = 5432


@dataclass(frozen=True, slots=True)
class Endpoint:
    """One member of the cluster, identified by host name and port.

    ``can_be_primary`` is a hint taken from the connection URL the endpoint was
    parsed from. It does not take part in equality or hashing.
    """

    name: str
    port: int = DEFAULT_PORT
    can_be_primary: bool = field(default=True, compare=False)

    def __post_init__(self) -> None:
        host_name_not_blank(self.name)
        port_in_acceptable_range(self.port)

    def __str__(self) -> str:
        return f"{self.name}:{self.port}"
