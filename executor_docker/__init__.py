"""
executor-docker - Docker build executor for CI/CD pipelines.

Translates build lifecycle commands into Docker Engine API operations:

- **Image resolution**: free-form references to pullable repository/tag pairs
- **Container topology**: support + build containers wired in dependency order
- **Label-based discovery**: stop() finds a build's containers on the runtime
- **Fault isolation**: one circuit breaker guards every runtime call

Quick Start:
    >>> from executor_docker import DockerExecutor, ExecutorSettings
    >>>
    >>> executor = DockerExecutor(
    ...     ExecutorSettings(
    ...         ecosystem={"api": "https://api", "store": "https://store", "ui": "https://ui"}
    ...     )
    ... )
    >>> await executor.start({"buildId": 1992, "container": "node:6", "token": jwt})
    >>> await executor.stop({"buildId": 1992})
"""

__version__ = "0.1.0"
__license__ = "MIT"

from executor_docker.base import Executor
from executor_docker.config import ExecutorSettings, get_settings
from executor_docker.errors import (
    CircuitOpenError,
    ExecutorError,
    ImageResolutionError,
    InvalidBuildIdentifierError,
    RuntimeCallError,
    RuntimeTimeoutError,
)
from executor_docker.executor import DockerExecutor, create_executor
from executor_docker.image import ImageReference, resolve
from executor_docker.models import BuildRequest, ContainerSpec, StopRequest

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Executors
    "DockerExecutor",
    "Executor",
    "create_executor",
    # Configuration
    "ExecutorSettings",
    "get_settings",
    # Models
    "BuildRequest",
    "ContainerSpec",
    "ImageReference",
    "StopRequest",
    "resolve",
    # Errors
    "CircuitOpenError",
    "ExecutorError",
    "ImageResolutionError",
    "InvalidBuildIdentifierError",
    "RuntimeCallError",
    "RuntimeTimeoutError",
]
