"""Configuration validation tests for the cluster connection.

No database connection required - pure validation testing.
"""

from __future__ import annotations

import pytest
from pydantic import SecretStr, ValidationError
from rich.console import Console

from pghealth.infrastructure.postgres import (
    ClusterConnection,
    ClusterConnectionConfig,
    ConfigurationError,
    ConnectionCredentials,
    MemberPoolSettings,
    load_cluster_config,
)

console = Console()

CLUSTER_URL = "postgresql://host-1:5432,host-2:5432/app?target_session_attrs=primary"


class TestConnectionCredentials:
    """Test ConnectionCredentials Pydantic validation."""

    def test_valid_configuration(self) -> None:
        console.print("[bold blue]Testing ConnectionCredentials[/bold blue]")

        credentials = ConnectionCredentials(urls=(CLUSTER_URL,), user="monitoring", password=SecretStr("secret"))

        assert credentials.urls == (CLUSTER_URL,)
        assert credentials.user == "monitoring"
        assert credentials.password is not None
        assert credentials.password.get_secret_value() == "secret"
        assert "secret" not in repr(credentials)

        console.print("[green]✓ Credentials are valid and password is masked[/green]")

    def test_of_url(self) -> None:
        credentials = ConnectionCredentials.of_url(CLUSTER_URL, "monitoring", "secret")

        assert credentials.urls == (CLUSTER_URL,)
        assert credentials.password is not None

    def test_of_url_rejects_invalid_url(self) -> None:
        with pytest.raises(ConfigurationError):
            ConnectionCredentials.of_url("mysql://host-1/app", "monitoring")

    @pytest.mark.parametrize("urls", [(), ("",), ("host-1:5432",), ("mysql://host-1/app",)])
    def test_invalid_urls_raise_configuration_error(self, urls: tuple[str, ...]) -> None:
        with pytest.raises(ConfigurationError, match="Invalid ConnectionCredentials"):
            ConnectionCredentials(urls=urls)

    def test_invalid_urls_are_still_value_errors(self) -> None:
        with pytest.raises(ValueError, match="urls"):
            ConnectionCredentials(urls=("host-1:5432",))

    def test_blank_user_raises_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="user"):
            ConnectionCredentials(urls=(CLUSTER_URL,), user=" ")


class TestClusterConnectionConfig:
    """Test ClusterConnectionConfig defaults and per-member pool configuration."""

    def test_defaults(self) -> None:
        console.print("[bold blue]Testing ClusterConnectionConfig defaults[/bold blue]")

        config = ClusterConnectionConfig(credentials=ConnectionCredentials(urls=(CLUSTER_URL,)))

        assert config.refresh_interval == 5.0
        assert config.probe_timeout == 2.0
        assert config.pool.max_size == 4
        assert config.connect_retry.max_attempts == 3

        console.print("[green]✓ Defaults are valid[/green]")

    @pytest.mark.parametrize("field", ["refresh_interval", "probe_timeout"])
    @pytest.mark.parametrize("value", [0, -1.5])
    def test_non_positive_intervals_raise_configuration_error(self, field: str, value: float) -> None:
        credentials = ConnectionCredentials(urls=(CLUSTER_URL,))

        with pytest.raises(ConfigurationError, match=field):
            ClusterConnectionConfig(credentials=credentials, **{field: value})

    def test_invalid_pool_settings_raise_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid MemberPoolSettings"):
            MemberPoolSettings(max_size=0)

    def test_for_member_builds_pool_params(self) -> None:
        config = ClusterConnectionConfig(
            credentials=ConnectionCredentials(urls=(CLUSTER_URL,), user="monitoring", password=SecretStr("secret")),
            pool=MemberPoolSettings(min_size=0, max_size=2),
        )

        params = config.for_member("postgresql://host-1:5432/app").to_pool_params()

        assert params["dsn"] == "postgresql://host-1:5432/app"
        assert params["user"] == "monitoring"
        assert params["password"] == "secret"
        assert params["min_size"] == 0
        assert params["max_size"] == 2
        assert params["server_settings"] == {"application_name": "pghealth", "jit": "off"}

    def test_password_is_omitted_when_not_set(self) -> None:
        config = ClusterConnectionConfig(credentials=ConnectionCredentials(urls=(CLUSTER_URL,)))

        assert "password" not in config.for_member(CLUSTER_URL).to_pool_params()

    def test_config_is_frozen(self) -> None:
        config = ClusterConnectionConfig(credentials=ConnectionCredentials(urls=(CLUSTER_URL,)))

        with pytest.raises(ValidationError):
            config.refresh_interval = 1.0  # type: ignore[misc]


class TestLoadClusterConfig:
    def test_loads_nested_data(self) -> None:
        config = load_cluster_config(
            {
                "credentials": {"urls": [CLUSTER_URL], "user": "monitoring"},
                "refresh_interval": 10,
                "connect_retry": {"max_attempts": 5},
            }
        )

        assert config.refresh_interval == 10.0
        assert config.connect_retry.max_attempts == 5

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"credentials": {"urls": []}},
            {"credentials": {"urls": ["jdbc:postgresql://host-1/app"]}},
            {"credentials": {"urls": [CLUSTER_URL]}, "unknown": True},
        ],
    )
    def test_invalid_data_raises_configuration_error(self, data: dict[str, object]) -> None:
        with pytest.raises(ConfigurationError, match="Invalid cluster configuration"):
            load_cluster_config(data)


class TestClusterConnectionFromConfig:
    def test_one_member_per_distinct_host(self) -> None:
        config = load_cluster_config(
            {
                "credentials": {
                    "urls": [
                        CLUSTER_URL,
                        "postgresql://host-2:5432,host-3:5432/app?target_session_attrs=standby",
                    ]
                },
                "refresh_interval": 7,
            }
        )

        cluster = ClusterConnection.from_config(config)

        assert [str(member) for member in cluster.members] == ["host-1:5432", "host-2:5432", "host-3:5432"]
        assert cluster.refresh_interval == 7.0

    def test_urls_without_hosts_are_rejected(self) -> None:
        config = load_cluster_config({"credentials": {"urls": ["postgresql:///app"]}})

        with pytest.raises(ConfigurationError, match="No hosts found"):
            ClusterConnection.from_config(config)
