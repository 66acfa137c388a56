"""
Container runtime abstraction.

The executor needs exactly five operations from a runtime. Anything that
implements ContainerRuntime can back an executor; DockerRuntime is the
Docker Engine API implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..models import ContainerSpec
    from ..naming import TrackingLabel


@dataclass(frozen=True, slots=True)
class ContainerHandle:
    """Runtime-assigned container id plus its name when known."""

    id: str
    name: str | None = None


@runtime_checkable
class ContainerRuntime(Protocol):
    """
    Protocol for container runtimes.

    Implementations raise RuntimeCallError (or a subclass) for every
    failure so callers see one error family regardless of transport.
    """

    async def pull_image(self, repository: str, tag: str) -> None:
        """Pull an image so containers can be created from it."""
        ...

    async def create_container(self, spec: ContainerSpec) -> ContainerHandle:
        """Create (but do not start) a container."""
        ...

    async def start_container(self, handle: ContainerHandle) -> None:
        ...

    async def list_containers(
        self,
        label: TrackingLabel,
        *,
        include_stopped: bool = True,
    ) -> list[ContainerHandle]:
        """List containers carrying the label."""
        ...

    async def remove_container(
        self,
        handle: ContainerHandle,
        *,
        delete_volumes: bool = True,
        force: bool = True,
    ) -> None:
        ...

    async def close(self) -> None:
        """Release connections held by the runtime."""
        ...


__all__ = ["ContainerHandle", "ContainerRuntime"]
