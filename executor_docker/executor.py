"""
Docker build executor.

Starts and stops builds on a Docker runtime. All state about which
containers belong to which build lives on the runtime itself, in the
tracking label, so stop() works from any process and after any partial
start().

Ordering:
    start: pull images (concurrently) -> create support container
           -> create build container -> start build container
    stop:  list labelled containers -> remove each (concurrently)

Failure policy:
    Nothing is retried and nothing is rolled back. The first error reaches
    the caller unchanged; containers created before a failure stay until the
    caller runs stop().
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .base import Executor
from .config import ExecutorSettings, get_settings
from .errors import ExecutorError
from .image import resolve
from .models import BuildRequest, StopRequest
from .naming import tracking_label
from .resilience import CircuitBreaker
from .runtime import DockerRuntime, FaultIsolatedRuntime
from .topology import ContainerTopology, LauncherTopology

if TYPE_CHECKING:
    from .runtime import ContainerHandle, ContainerRuntime

logger = logging.getLogger(__name__)


class DockerExecutor(Executor):
    """
    Executor that runs each build as a pair of Docker containers.

    Example:
        executor = DockerExecutor(settings)
        await executor.start({"buildId": 1992, "container": "node:6", "token": jwt})
        ...
        await executor.stop({"buildId": 1992})
    """

    def __init__(
        self,
        settings: ExecutorSettings,
        *,
        runtime: ContainerRuntime | None = None,
        topology: ContainerTopology | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        """
        Initialize the executor.

        Args:
            settings: Executor settings
            runtime: Runtime to drive (defaults to DockerRuntime over settings.docker)
            topology: Container topology (defaults to LauncherTopology)
            breaker: Circuit breaker shared by every runtime call
        """
        self.settings = settings
        self.breaker = breaker or CircuitBreaker(
            name="docker",
            failure_threshold=settings.breaker.failure_threshold,
            recovery_timeout=settings.breaker.recovery_timeout,
            call_timeout=settings.breaker.call_timeout,
        )
        self.runtime = FaultIsolatedRuntime(
            runtime if runtime is not None else DockerRuntime(settings.docker),
            self.breaker,
        )
        self.topology = topology if topology is not None else LauncherTopology(settings)

    def _build_request(self, config: BuildRequest | Mapping[str, Any]) -> BuildRequest:
        if isinstance(config, BuildRequest):
            return config
        data = dict(config)
        if not data.keys() & {"endpoints", "ecosystem"}:
            data["endpoints"] = self.settings.ecosystem
        if not data.keys() & {"prefix", "namePrefix", "name_prefix"}:
            data["prefix"] = self.settings.prefix
        return BuildRequest.model_validate(data)

    def _stop_request(self, config: StopRequest | Mapping[str, Any]) -> StopRequest:
        if isinstance(config, StopRequest):
            return config
        data = dict(config)
        if not data.keys() & {"prefix", "namePrefix", "name_prefix"}:
            data["prefix"] = self.settings.prefix
        return StopRequest.model_validate(data)

    async def _start(self, request: BuildRequest) -> None:
        # Validate everything before the first runtime call
        label = tracking_label(request.prefix, request.build_id)
        build_image = resolve(request.container)
        support_spec = self.topology.support_spec(request)
        images = [*self.topology.support_images(), build_image]

        logger.info(f"Starting build {label.value} in {request.container}")

        await asyncio.gather(
            *(self.runtime.pull_image(image.repository, image.tag) for image in images)
        )

        volumes_from: list[str] = []
        if support_spec is not None:
            support = await self.runtime.create_container(support_spec)
            logger.debug(f"Created support container {support_spec.name} ({support.id})")
            volumes_from.append(support.id)

        build_spec = self.topology.build_spec(request, volumes_from)
        build = await self.runtime.create_container(build_spec)
        logger.debug(f"Created build container {build_spec.name} ({build.id})")

        await self.runtime.start_container(build)
        logger.info(f"Started build {label.value}")

    async def _remove(self, handle: ContainerHandle) -> None:
        try:
            await self.runtime.remove_container(handle, delete_volumes=True, force=True)
        except ExecutorError as e:
            logger.error(f"Failed to remove container {handle.name or handle.id}: {e}")
            raise

    async def _stop(self, request: StopRequest) -> None:
        label = tracking_label(request.prefix, request.build_id)
        containers = await self.runtime.list_containers(label, include_stopped=True)

        if not containers:
            logger.info(f"No containers found for build {label.value}")
            return

        logger.info(f"Removing {len(containers)} container(s) of build {label.value}")
        # First failure wins; sibling removals keep running to completion
        await asyncio.gather(*(self._remove(handle) for handle in containers))

    def stats(self) -> dict[str, Any]:
        """Retrieve request statistics and breaker state."""
        return self.runtime.stats()

    async def close(self) -> None:
        await self.runtime.close()


def create_executor(settings: ExecutorSettings | None = None) -> DockerExecutor:
    """Create an executor from settings, or from the environment when omitted."""
    return DockerExecutor(settings if settings is not None else get_settings())


__all__ = ["DockerExecutor", "create_executor"]
