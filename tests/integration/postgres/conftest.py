"""Shared fixtures for pghealth cluster integration tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from docker import from_env  # type: ignore[import-untyped]
from docker.errors import DockerException  # type: ignore[import-untyped]

from .replication_fixtures import (  # noqa: F401
    cluster_connection,
    primary_container,
    replica_container,
)


def pytest_configure(config: pytest.Config) -> None:  # noqa: ARG001
    """Point testcontainers at the local Docker socket before any fixture runs."""
    if not os.environ.get("DOCKER_HOST"):
        possible_sockets = [
            Path("/var/run/docker.sock"),
            Path.home() / ".docker" / "run" / "docker.sock",
        ]
        for socket_path in possible_sockets:
            if socket_path.exists():
                os.environ["DOCKER_HOST"] = f"unix://{socket_path}"
                os.environ["TESTCONTAINERS_DOCKER_SOCKET_OVERRIDE"] = str(socket_path)
                break

    # Ryuk (testcontainers cleanup daemon) has known issues on macOS/Docker Desktop
    if sys.platform == "darwin" and not os.environ.get("TESTCONTAINERS_RYUK_DISABLED"):
        os.environ["TESTCONTAINERS_RYUK_DISABLED"] = "true"


def _is_docker_available() -> bool:
    try:
        client = from_env()
        client.ping()
    except DockerException:
        return False
    else:
        return True


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:  # noqa: ARG001
    if _is_docker_available():
        return
    skip_docker = pytest.mark.skip(reason="Docker daemon not accessible")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_docker)
