"""
Executor Configuration

Typed settings with defaults in one place, loaded from the environment.
"""

from .schemas import BreakerSettings, DockerConnection, Ecosystem, ExecutorSettings
from .service import get_settings, load_settings

__all__ = [
    "BreakerSettings",
    "DockerConnection",
    "Ecosystem",
    "ExecutorSettings",
    "get_settings",
    "load_settings",
]
