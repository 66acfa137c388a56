"""
Container runtimes for the executor.

- ContainerRuntime: the five operations an executor needs
- DockerRuntime: Docker Engine API implementation (httpx)
- FaultIsolatedRuntime: runs any runtime's calls through a circuit breaker
"""

from .base import ContainerHandle, ContainerRuntime
from .client import FaultIsolatedRuntime
from .docker import DockerRuntime, container_payload

__all__ = [
    "ContainerHandle",
    "ContainerRuntime",
    "DockerRuntime",
    "FaultIsolatedRuntime",
    "container_payload",
]
