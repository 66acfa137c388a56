"""
Configuration Schemas for the Docker executor.

All executor options and their defaults live here. The calling orchestrator
owns loading; the executor only consumes an ExecutorSettings instance.

Security:
    TLS key material is referenced by path only. Build tokens never appear
    in settings.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

GIBIBYTE = 1024 * 1024 * 1024


class DockerConnection(BaseModel):
    """
    How to reach the Docker Engine API.

    A socket path wins over host/port when both are given.
    """

    model_config = ConfigDict(frozen=True)

    protocol: str = Field("http", pattern=r"^https?$", description="Protocol for TCP connections")
    host: str | None = Field(None, description="Docker (Swarm) host to interact with")
    port: int | None = Field(None, ge=1, le=65535)
    socket_path: str | None = Field(None, description="Unix socket of the Docker daemon")
    ca: str | None = Field(None, description="Path to the certificate authority bundle")
    cert: str | None = Field(None, description="Path to the client certificate")
    key: str | None = Field(None, description="Path to the client certificate key")
    api_version: str | None = Field(None, description="Engine API version prefix, e.g. v1.41")
    connect_timeout: float = Field(30.0, gt=0)

    @property
    def uses_socket(self) -> bool:
        return self.socket_path is not None or self.host is None

    @property
    def base_url(self) -> str:
        if self.uses_socket:
            return "http://docker"
        port = self.port or (2376 if self.protocol == "https" else 2375)
        return f"{self.protocol}://{self.host}:{port}"


class Ecosystem(BaseModel):
    """Routable URIs of the platform, handed to the in-container launcher."""

    model_config = ConfigDict(frozen=True)

    api: str = Field(..., min_length=1, description="Routable URI to the API")
    store: str = Field(..., min_length=1, description="Routable URI to the Store")
    ui: str = Field(..., min_length=1, description="Routable URI to the UI")


class BreakerSettings(BaseModel):
    """Circuit breaker tuning shared by every runtime call."""

    model_config = ConfigDict(frozen=True)

    failure_threshold: int = Field(10, ge=1, description="Consecutive failures before opening")
    call_timeout: float = Field(5 * 60.0, gt=0, description="Seconds before a call times out")
    recovery_timeout: float = Field(30.0, ge=0, description="Seconds before half-open")


class ExecutorSettings(BaseModel):
    """
    Executor settings model.

    Used for type-safe settings access; every default is declared here.
    """

    model_config = ConfigDict(frozen=True)

    docker: DockerConnection = Field(default_factory=DockerConnection)
    ecosystem: Ecosystem
    breaker: BreakerSettings = Field(default_factory=BreakerSettings)

    # Launcher container
    launch_image: str = "screwdrivercd/launcher"
    launch_version: str = "stable"

    # Prefix to all container names and tracking labels
    prefix: str = ""

    # Build container resources
    memory_bytes: int = Field(2 * GIBIBYTE, gt=0)
    memory_swap_bytes: int = Field(3 * GIBIBYTE, gt=0)
