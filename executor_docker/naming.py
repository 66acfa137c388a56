"""
Container naming and tracking labels.

The tracking label is the only durable link between a build and its
containers: stop() finds a build's containers by querying the runtime for
it. The prefix lets several executors share one runtime without one
tenant's stop() touching another tenant's containers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidBuildIdentifierError

# Versioned: changing the key orphans containers of builds started before the change
TRACKING_LABEL_KEY = "sdbuild"

SUPPORT_SUFFIX = "-init"
BUILD_SUFFIX = "-build"

_BUILD_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_PREFIX = re.compile(r"^[A-Za-z0-9_.-]*$")


@dataclass(frozen=True, slots=True)
class TrackingLabel:
    """Label attached to every container of one build."""

    key: str
    value: str

    def as_filter(self) -> str:
        """Render as a runtime label filter term (key=value)."""
        return f"{self.key}={self.value}"

    def as_dict(self) -> dict[str, str]:
        return {self.key: self.value}


def _stem(prefix: str, build_id: int | str) -> str:
    build_id = str(build_id)
    if not _BUILD_ID.match(build_id):
        raise InvalidBuildIdentifierError(build_id, "build_id")
    if not _PREFIX.match(prefix):
        raise InvalidBuildIdentifierError(prefix, "prefix")
    return f"{prefix}{build_id}"


def support_name(prefix: str, build_id: int | str) -> str:
    """Name of the support (init) container of a build."""
    return f"{_stem(prefix, build_id)}{SUPPORT_SUFFIX}"


def build_name(prefix: str, build_id: int | str) -> str:
    """Name of the container the build runs in."""
    return f"{_stem(prefix, build_id)}{BUILD_SUFFIX}"


def tracking_label(prefix: str, build_id: int | str) -> TrackingLabel:
    return TrackingLabel(key=TRACKING_LABEL_KEY, value=_stem(prefix, build_id))


__all__ = [
    "BUILD_SUFFIX",
    "SUPPORT_SUFFIX",
    "TRACKING_LABEL_KEY",
    "TrackingLabel",
    "build_name",
    "support_name",
    "tracking_label",
]
