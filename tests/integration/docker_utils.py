"""Docker helpers for integration tests."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

if TYPE_CHECKING:
    from docker.client import DockerClient
    from docker.models.containers import Container
else:
    DockerClient = Any  # type: ignore[misc,assignment]
    Container = Any  # type: ignore[misc,assignment]

# Containers started by the suite carry this label
TEST_LABEL = "cacheaside.test"


def get_docker_client() -> DockerClient:
    """Create a Docker client from environment settings."""
    import docker

    return docker.from_env()


def published_host(client: DockerClient) -> str:
    """Host on which published container ports are reachable."""
    base_url = client.api.base_url
    if base_url.startswith(("unix://", "npipe://", "http+docker://")):
        return "localhost"
    return urlparse(base_url).hostname or "localhost"


@dataclass
class DockerService:
    """A running container plus the host its ports are published on."""

    container: Container
    host: str

    def port(self, container_port: int) -> int:
        """Host port bound to a TCP container port."""
        self.container.reload()
        key = f"{container_port}/tcp"
        bindings = self.container.attrs["NetworkSettings"]["Ports"].get(key)
        if not bindings:
            raise RuntimeError(f"Port {key} not published by {self.container.short_id}")
        return int(bindings[0]["HostPort"])

    def url(self, scheme: str, container_port: int, path: str = "", credentials: str = "") -> str:
        """Connection URL for a service port, e.g. redis://host:port/0."""
        auth = f"{credentials}@" if credentials else ""
        return f"{scheme}://{auth}{self.host}:{self.port(container_port)}{path}"


@contextmanager
def run_container(
    client: DockerClient,
    image: str,
    *,
    env: dict[str, str] | None = None,
    ports: Mapping[str, int | None] | None = None,
) -> Iterator[DockerService]:
    """Run a detached, labelled container and remove it on exit."""
    container = client.containers.run(
        image,
        detach=True,
        environment=env,
        ports=ports,
        labels={TEST_LABEL: "1"},
    )
    try:
        yield DockerService(container=container, host=published_host(client))
    finally:
        container.remove(force=True, v=True)
