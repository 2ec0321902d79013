"""Configuration models for connecting to a PostgreSQL cluster.

- `ConnectionCredentials`: cluster URLs plus the login shared by every member
- `MemberPoolConfig`: pool configuration for a single member
- `ClusterConnectionConfig`: everything a `ClusterConnection` needs
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from ...config.retry import RetryConfig
from .exceptions import ConfigurationError
from .validators import not_blank, url_not_blank_and_valid, urls_not_empty_and_valid

DEFAULT_REFRESH_INTERVAL_S = 5.0
DEFAULT_PROBE_TIMEOUT_S = 2.0


class _ConfigModel(BaseModel):
    """Frozen model whose constructor reports invalid input as `ConfigurationError`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __init__(self, /, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            msg = f"Invalid {type(self).__name__}: {exc}"
            raise ConfigurationError(msg) from exc


class ConnectionCredentials(_ConfigModel):
    """Connection URLs of a cluster and the credentials used for every member.

    Examples
    --------
    >>> credentials = ConnectionCredentials(
    ...     urls=("postgresql://host-1:5432,host-2:5432/app?target_session_attrs=primary",),
    ...     user="monitoring",
    ...     password=SecretStr("secret"),
    ... )
    """

    urls: tuple[str, ...] = Field(min_length=1)
    user: str = Field(default="postgres")
    password: SecretStr | None = Field(default=None)

    @field_validator("urls")
    @classmethod
    def _validate_urls(cls, urls: tuple[str, ...]) -> tuple[str, ...]:
        urls_not_empty_and_valid(urls)
        return urls

    @field_validator("user")
    @classmethod
    def _validate_user(cls, user: str) -> str:
        return not_blank(user, "user")

    @classmethod
    def of_url(cls, url: str, user: str, password: str | None = None) -> ConnectionCredentials:
        url_not_blank_and_valid(url, "write url")
        return cls(urls=(url,), user=user, password=SecretStr(password) if password else None)


class MemberPoolSettings(_ConfigModel):
    """Pool sizing for one member. Diagnostics are few and short, so pools stay small."""

    min_size: int = Field(default=1, ge=0, le=100)
    max_size: int = Field(default=4, ge=1, le=100)
    command_timeout: float = Field(default=60.0, ge=1.0, le=3600.0)
    connect_timeout: float = Field(default=5.0, gt=0.0, le=300.0)
    max_inactive_connection_lifetime: float = Field(default=300.0, ge=0.0)


class MemberServerSettings(_ConfigModel):
    """PostgreSQL server settings passed to every member connection."""

    application_name: str = Field(default="pghealth")
    jit: Literal["on", "off"] = Field(default="off")


class MemberPoolConfig(_ConfigModel):
    """Complete configuration for the pool of a single cluster member."""

    url: str
    user: str
    password: SecretStr | None = None
    pool: MemberPoolSettings = Field(default_factory=MemberPoolSettings)
    server_settings: MemberServerSettings = Field(default_factory=MemberServerSettings)

    def to_pool_params(self) -> dict[str, Any]:
        """Convert config to asyncpg.create_pool() parameters."""
        params: dict[str, Any] = {
            "dsn": self.url,
            "user": self.user,
            "min_size": self.pool.min_size,
            "max_size": self.pool.max_size,
            "command_timeout": self.pool.command_timeout,
            "timeout": self.pool.connect_timeout,
            "max_inactive_connection_lifetime": self.pool.max_inactive_connection_lifetime,
            "server_settings": self.server_settings.model_dump(),
        }
        if self.password is not None:
            params["password"] = self.password.get_secret_value()
        return params


class ClusterConnectionConfig(_ConfigModel):
    """Configuration of a `ClusterConnection`.

    Examples
    --------
    >>> config = load_cluster_config(
    ...     {
    ...         "credentials": {"urls": ["postgresql://h1,h2/app"], "user": "monitoring"},
    ...         "refresh_interval": 10,
    ...     }
    ... )
    """

    credentials: ConnectionCredentials
    pool: MemberPoolSettings = Field(default_factory=MemberPoolSettings)
    server_settings: MemberServerSettings = Field(default_factory=MemberServerSettings)
    refresh_interval: float = Field(default=DEFAULT_REFRESH_INTERVAL_S, gt=0.0, description="Seconds between refreshes")
    probe_timeout: float = Field(default=DEFAULT_PROBE_TIMEOUT_S, gt=0.0, description="Per-member probe timeout")
    connect_retry: RetryConfig = Field(default_factory=RetryConfig)

    def for_member(self, url: str) -> MemberPoolConfig:
        return MemberPoolConfig(
            url=url,
            user=self.credentials.user,
            password=self.credentials.password,
            pool=self.pool,
            server_settings=self.server_settings,
        )


def load_cluster_config(data: dict[str, Any]) -> ClusterConnectionConfig:
    """Validate raw configuration data (e.g. from YAML or environment).

    Raises
    ------
    ConfigurationError
        If the data does not describe a valid cluster configuration.
    """
    try:
        return ClusterConnectionConfig.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid cluster configuration: {exc}"
        raise ConfigurationError(msg) from exc
