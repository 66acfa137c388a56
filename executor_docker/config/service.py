"""
Settings loading for the Docker executor.

Reads SD_DOCKER_* environment variables into an ExecutorSettings instance.
Unset variables fall back to the defaults declared in schemas.py.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from functools import lru_cache

from .schemas import BreakerSettings, DockerConnection, Ecosystem, ExecutorSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "SD_DOCKER_"


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(f"{ENV_PREFIX}{name}")
    if value is None or value == "":
        return None
    return value


def _drop_unset(values: dict[str, str | None]) -> dict[str, str]:
    """Keep only explicitly set values so model defaults apply."""
    return {key: value for key, value in values.items() if value is not None}


def load_settings(environ: Mapping[str, str] | None = None) -> ExecutorSettings:
    """
    Build executor settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Validated ExecutorSettings

    Raises:
        pydantic.ValidationError: If a value is missing or malformed
    """
    environ = os.environ if environ is None else environ

    docker = DockerConnection(
        **_drop_unset(
            {
                "protocol": _env(environ, "PROTOCOL"),
                "host": _env(environ, "HOST"),
                "port": _env(environ, "PORT"),
                "socket_path": _env(environ, "SOCKET_PATH"),
                "ca": _env(environ, "CA"),
                "cert": _env(environ, "CERT"),
                "key": _env(environ, "KEY"),
                "api_version": _env(environ, "API_VERSION"),
            }
        )
    )
    ecosystem = Ecosystem(
        **_drop_unset(
            {
                "api": _env(environ, "ECOSYSTEM_API"),
                "store": _env(environ, "ECOSYSTEM_STORE"),
                "ui": _env(environ, "ECOSYSTEM_UI"),
            }
        )
    )
    breaker = BreakerSettings(
        **_drop_unset(
            {
                "failure_threshold": _env(environ, "BREAKER_FAILURE_THRESHOLD"),
                "call_timeout": _env(environ, "BREAKER_TIMEOUT"),
                "recovery_timeout": _env(environ, "BREAKER_RECOVERY_TIMEOUT"),
            }
        )
    )

    settings = ExecutorSettings(
        docker=docker,
        ecosystem=ecosystem,
        breaker=breaker,
        **_drop_unset(
            {
                "launch_image": _env(environ, "LAUNCH_IMAGE"),
                "launch_version": _env(environ, "LAUNCH_VERSION"),
                "prefix": environ.get(f"{ENV_PREFIX}PREFIX"),
                "memory_bytes": _env(environ, "MEMORY_BYTES"),
                "memory_swap_bytes": _env(environ, "MEMORY_SWAP_BYTES"),
            }
        ),
    )
    logger.debug(
        f"Loaded executor settings: docker={docker.base_url} "
        f"launcher={settings.launch_image}:{settings.launch_version} "
        f"prefix={settings.prefix!r}"
    )
    return settings


@lru_cache()
def get_settings() -> ExecutorSettings:
    """
    Get executor settings from the process environment.

    Uses lru_cache for singleton pattern.
    """
    return load_settings()
