"""
Executor contract.

An executor turns build lifecycle commands from the pipeline orchestrator
into runtime operations. The orchestrator selects one executor per build;
every executor exposes the same surface:

- start(config) / stop(config): required, implemented via _start/_stop
- start_periodic/stop_periodic/start_frozen/stop_frozen: optional build
  modes; the defaults resolve to None (not supported)
- stats(): executor health for the orchestrator's status endpoint

Lifecycle Methods:
- start()/stop() validate the incoming payload before delegating
- close(): release runtime connections (optional)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .models import BuildRequest, StopRequest

logger = logging.getLogger(__name__)


class Executor(ABC):
    """
    Base class for build executors.

    Subclasses must implement:
    - _start(): Start the build described by a validated BuildRequest
    - _stop(): Tear down the build described by a validated StopRequest
    - stats(): Report executor statistics
    """

    def _build_request(self, config: BuildRequest | Mapping[str, Any]) -> BuildRequest:
        """Validate a start payload. Override to fill executor-level defaults."""
        if isinstance(config, BuildRequest):
            return config
        return BuildRequest.model_validate(dict(config))

    def _stop_request(self, config: StopRequest | Mapping[str, Any]) -> StopRequest:
        """Validate a stop payload. Override to fill executor-level defaults."""
        if isinstance(config, StopRequest):
            return config
        return StopRequest.model_validate(dict(config))

    async def start(self, config: BuildRequest | Mapping[str, Any]) -> None:
        """
        Start a build.

        Raises:
            pydantic.ValidationError: If the payload is invalid
            ExecutorError: Whatever the executor raised, unchanged
        """
        return await self._start(self._build_request(config))

    async def stop(self, config: StopRequest | Mapping[str, Any]) -> None:
        """Stop a build, removing everything it left on the runtime."""
        return await self._stop(self._stop_request(config))

    @abstractmethod
    async def _start(self, request: BuildRequest) -> None:
        ...

    @abstractmethod
    async def _stop(self, request: StopRequest) -> None:
        ...

    @abstractmethod
    def stats(self) -> dict[str, Any]:
        ...

    async def start_periodic(self, config: Mapping[str, Any] | None = None) -> None:
        """Periodic builds are not supported by default."""
        return None

    async def stop_periodic(self, config: Mapping[str, Any] | None = None) -> None:
        return None

    async def start_frozen(self, config: Mapping[str, Any] | None = None) -> None:
        """Frozen builds are not supported by default."""
        return None

    async def stop_frozen(self, config: Mapping[str, Any] | None = None) -> None:
        return None

    async def close(self) -> None:
        """
        Release resources.

        Default implementation does nothing.
        """
        pass

    async def __aenter__(self) -> Executor:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


__all__ = ["Executor"]
