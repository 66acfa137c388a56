"""
Container topologies.

A topology decides which containers make up a build and how each is
shaped. The executor sequences whatever the topology returns:

1. pull support images and the build image
2. create the support container, if the topology has one
3. create the build container, mounting the support container's volumes
4. start the build container

LauncherTopology is the default: a never-started support container carries
the launcher binaries, and the build container mounts them and runs
/opt/sd/run.sh.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .image import ImageReference, resolve
from .models import ContainerSpec
from .naming import build_name, support_name, tracking_label

if TYPE_CHECKING:
    from .config.schemas import ExecutorSettings
    from .models import BuildRequest

NOOP_ENTRYPOINT = "/bin/true"
LAUNCHER_ENTRYPOINT = "/opt/sd/launcher_entrypoint.sh"
RUN_SCRIPT = "/opt/sd/run.sh"
DOCKER_SOCKET_BIND = "/var/run/docker.sock:/var/run/docker.sock"


@runtime_checkable
class ContainerTopology(Protocol):
    """Protocol for container-spec building strategies."""

    def support_images(self) -> list[ImageReference]:
        """Images to pull alongside the build image."""
        ...

    def support_spec(self, request: BuildRequest) -> ContainerSpec | None:
        """Spec of the support container, or None when the topology has none."""
        ...

    def build_spec(self, request: BuildRequest, volumes_from: Sequence[str]) -> ContainerSpec:
        """Spec of the container the build runs in."""
        ...


class LauncherTopology:
    """
    Support container with the launcher plus a privileged build container.

    Build container wire contract (read by the in-container launcher):
        entrypoint: /opt/sd/launcher_entrypoint.sh
        command:    /opt/sd/run.sh "<token>" <api> <store> <timeout> <buildId> <ui>
    """

    def __init__(self, settings: ExecutorSettings):
        self.settings = settings
        self.launcher_image = resolve(f"{settings.launch_image}:{settings.launch_version}")

    def support_images(self) -> list[ImageReference]:
        return [self.launcher_image]

    def support_spec(self, request: BuildRequest) -> ContainerSpec:
        return ContainerSpec(
            name=support_name(request.prefix, request.build_id),
            image=str(self.launcher_image),
            entrypoint=NOOP_ENTRYPOINT,
            labels=tracking_label(request.prefix, request.build_id).as_dict(),
        )

    def build_command(self, request: BuildRequest) -> str:
        endpoints = request.endpoints
        return " ".join(
            [
                RUN_SCRIPT,
                f'"{request.token.get_secret_value()}"',
                endpoints.api,
                endpoints.store,
                str(request.timeout_minutes),
                str(request.build_id),
                endpoints.ui,
            ]
        )

    def build_spec(self, request: BuildRequest, volumes_from: Sequence[str]) -> ContainerSpec:
        return ContainerSpec(
            name=build_name(request.prefix, request.build_id),
            image=request.container,
            entrypoint=LAUNCHER_ENTRYPOINT,
            command=(self.build_command(request),),
            labels=tracking_label(request.prefix, request.build_id).as_dict(),
            memory_bytes=self.settings.memory_bytes,
            memory_swap_bytes=self.settings.memory_swap_bytes,
            volumes_from=tuple(f"{container_id}:rw" for container_id in volumes_from),
            privileged=True,
            binds=(DOCKER_SOCKET_BIND,),
        )


__all__ = [
    "DOCKER_SOCKET_BIND",
    "LAUNCHER_ENTRYPOINT",
    "NOOP_ENTRYPOINT",
    "RUN_SCRIPT",
    "ContainerTopology",
    "LauncherTopology",
]
