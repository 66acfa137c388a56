"""
Image reference resolution.

Turns a free-form image string such as ``node:6`` or
``docker-registry.foo.bar:1111/someImage`` into the ``fromImage``/``tag``
pair the runtime's pull call expects.

The reference grammar is the conventional one::

    [registry-host[:port]/][namespace/]repository[:tag][@digest]

Unlike most reference parsers, the resolver never injects a default
namespace (``library/``): private registries usually have no such
namespace, and pulling ``host:1111/library/someImage`` from them fails.
The repository is always exactly what the caller wrote, minus the tag.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ImageResolutionError

DEFAULT_TAG = "latest"

_HOST = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?(?::[0-9]+)?$")
_PATH_COMPONENT = re.compile(r"^[A-Za-z0-9]+(?:(?:[._]|__|-+)[A-Za-z0-9]+)*$")
_TAG = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_DIGEST = re.compile(r"^[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}$")


@dataclass(frozen=True, slots=True)
class ImageReference:
    """A runtime-ready image name and tag (or digest)."""

    repository: str
    tag: str = DEFAULT_TAG

    def __str__(self) -> str:
        separator = "@" if _DIGEST.match(self.tag) else ":"
        return f"{self.repository}{separator}{self.tag}"


def _check_components(reference: str, name: str) -> None:
    components = name.split("/")
    for index, component in enumerate(components):
        if not component:
            raise ImageResolutionError(reference, "empty path component")
        is_registry = index == 0 and len(components) > 1
        if is_registry and _HOST.match(component):
            continue
        if not _PATH_COMPONENT.match(component):
            raise ImageResolutionError(reference, f"invalid path component {component!r}")


def resolve(reference: str) -> ImageReference:
    """
    Resolve an image reference into repository and tag.

    Args:
        reference: Image reference as written by the user

    Returns:
        ImageReference; tag defaults to "latest", digests take the tag's place

    Raises:
        ImageResolutionError: If the reference is malformed

    Example:
        >>> resolve("node:6")
        ImageReference(repository='node', tag='6')
        >>> resolve("host:1111/someImage")
        ImageReference(repository='host:1111/someImage', tag='latest')
    """
    if not isinstance(reference, str) or not reference:
        raise ImageResolutionError(str(reference), "reference is empty")
    if any(char.isspace() for char in reference):
        raise ImageResolutionError(reference, "reference contains whitespace")

    name, at, digest = reference.partition("@")
    if at and not _DIGEST.match(digest):
        raise ImageResolutionError(reference, f"invalid digest {digest!r}")

    # A colon after the last slash separates the tag; earlier ones belong to the host
    slash = name.rfind("/")
    colon = name.rfind(":")
    tag = None
    if colon > slash:
        name, tag = name[:colon], name[colon + 1 :]
        if not _TAG.match(tag):
            raise ImageResolutionError(reference, f"invalid tag {tag!r}")

    _check_components(reference, name)

    if at:
        return ImageReference(repository=name, tag=digest)
    if tag is None:
        return ImageReference(repository=reference, tag=DEFAULT_TAG)
    return ImageReference(repository=name, tag=tag)


__all__ = ["DEFAULT_TAG", "ImageReference", "resolve"]
