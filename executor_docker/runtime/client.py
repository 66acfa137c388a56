"""
Fault-isolated runtime client.

Routes each of the five runtime operations through one shared
CircuitBreaker. Errors from the runtime pass through unchanged; the breaker
only adds its own CircuitOpenError and RuntimeTimeoutError.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..models import ContainerSpec
    from ..naming import TrackingLabel
    from ..resilience import CircuitBreaker
    from .base import ContainerHandle, ContainerRuntime

logger = logging.getLogger(__name__)


class FaultIsolatedRuntime:
    """
    ContainerRuntime wrapper that runs every call through a circuit breaker.

    The breaker is shared by all builds using this client, so a burst of
    failures from one build can open it for everyone.
    """

    def __init__(self, runtime: ContainerRuntime, breaker: CircuitBreaker):
        self.runtime = runtime
        self.breaker = breaker

    async def pull_image(self, repository: str, tag: str) -> None:
        await self.breaker.call(
            lambda: self.runtime.pull_image(repository, tag),
            operation_name="pull_image",
        )

    async def create_container(self, spec: ContainerSpec) -> ContainerHandle:
        return await self.breaker.call(
            lambda: self.runtime.create_container(spec),
            operation_name="create_container",
        )

    async def start_container(self, handle: ContainerHandle) -> None:
        await self.breaker.call(
            lambda: self.runtime.start_container(handle),
            operation_name="start_container",
        )

    async def list_containers(
        self,
        label: TrackingLabel,
        *,
        include_stopped: bool = True,
    ) -> list[ContainerHandle]:
        return await self.breaker.call(
            lambda: self.runtime.list_containers(label, include_stopped=include_stopped),
            operation_name="list_containers",
        )

    async def remove_container(
        self,
        handle: ContainerHandle,
        *,
        delete_volumes: bool = True,
        force: bool = True,
    ) -> None:
        await self.breaker.call(
            lambda: self.runtime.remove_container(
                handle, delete_volumes=delete_volumes, force=force
            ),
            operation_name="remove_container",
        )

    async def close(self) -> None:
        await self.runtime.close()

    def stats(self) -> dict[str, Any]:
        return self.breaker.stats()


__all__ = ["FaultIsolatedRuntime"]
