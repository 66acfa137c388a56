"""
Request and container models for the Docker executor.

BuildRequest and StopRequest are what the calling orchestrator hands us;
they accept the orchestrator's camelCase keys as well as snake_case.
ContainerSpec is what we hand the runtime.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator

from .config.schemas import Ecosystem

TIMEOUT_ANNOTATION = "screwdriver.cd/timeout"
DEFAULT_TIMEOUT_MINUTES = 90


# =============================================================================
# Requests
# =============================================================================


class BuildRequest(BaseModel):
    """
    Everything needed to start one build attempt.

    Immutable for the duration of a start() call.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    build_id: int | str = Field(..., validation_alias=AliasChoices("build_id", "buildId"))
    container: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("container", "imageReference", "image_reference"),
        description="Image reference the build runs in",
    )
    token: SecretStr = Field(..., validation_alias=AliasChoices("token", "authToken", "auth_token"))
    api_uri: str | None = Field(None, validation_alias=AliasChoices("api_uri", "apiUri"))
    annotations: dict[str, Any] = Field(default_factory=dict)
    endpoints: Ecosystem = Field(..., validation_alias=AliasChoices("endpoints", "ecosystem"))
    prefix: str = Field("", validation_alias=AliasChoices("prefix", "namePrefix", "name_prefix"))

    @field_validator("annotations")
    @classmethod
    def _check_timeout(cls, value: dict[str, Any]) -> dict[str, Any]:
        timeout = value.get(TIMEOUT_ANNOTATION)
        if timeout is not None:
            try:
                minutes = int(timeout)
            except (TypeError, ValueError) as e:
                raise ValueError(f"{TIMEOUT_ANNOTATION} must be an integer, got {timeout!r}") from e
            if minutes <= 0:
                raise ValueError(f"{TIMEOUT_ANNOTATION} must be positive, got {minutes}")
        return value

    @property
    def timeout_minutes(self) -> int:
        """Build timeout from annotations, 90 minutes when not set."""
        timeout = self.annotations.get(TIMEOUT_ANNOTATION)
        if timeout is None:
            return DEFAULT_TIMEOUT_MINUTES
        return int(timeout)


class StopRequest(BaseModel):
    """Identifies the build whose containers should be removed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    build_id: int | str = Field(..., validation_alias=AliasChoices("build_id", "buildId"))
    prefix: str = Field("", validation_alias=AliasChoices("prefix", "namePrefix", "name_prefix"))


# =============================================================================
# Container specs
# =============================================================================


@dataclass(frozen=True, slots=True)
class ContainerSpec:
    """Runtime-neutral description of a container to create."""

    name: str
    image: str
    entrypoint: str | None = None
    command: tuple[str, ...] = ()
    env: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    memory_bytes: int | None = None
    memory_swap_bytes: int | None = None
    volumes_from: tuple[str, ...] = ()
    privileged: bool = False
    binds: tuple[str, ...] = ()


__all__ = [
    "DEFAULT_TIMEOUT_MINUTES",
    "TIMEOUT_ANNOTATION",
    "BuildRequest",
    "ContainerSpec",
    "StopRequest",
]
