"""
Tests for image reference resolution.
"""

import pytest

from executor_docker.errors import ImageResolutionError
from executor_docker.image import ImageReference, resolve

DIGEST = "sha256:" + "a" * 64


class TestResolve:
    @pytest.mark.parametrize(
        "reference",
        [
            "node",
            "library/node",
            "docker-registry.foo.bar:1111/someImage",
            "localhost:5000/team/app",
            "ghcr.io/org/project/tool",
        ],
    )
    def test_missing_tag_defaults_to_latest(self, reference):
        assert resolve(reference) == ImageReference(repository=reference, tag="latest")

    @pytest.mark.parametrize(
        ("reference", "repository", "tag"),
        [
            ("node:6", "node", "6"),
            ("docker-registry.foo.bar:1111/someImage:v2", "docker-registry.foo.bar:1111/someImage", "v2"),
            ("host:1111/someImage:v2", "host:1111/someImage", "v2"),
            ("registry.example.com/team/app:1.0.3-rc_1", "registry.example.com/team/app", "1.0.3-rc_1"),
        ],
    )
    def test_explicit_tag_is_split_without_namespace(self, reference, repository, tag):
        resolved = resolve(reference)

        assert resolved.repository == repository
        assert resolved.tag == tag
        assert "/library/" not in resolved.repository

    def test_latest_tag_is_stripped(self):
        resolved = resolve("docker-registry.foo.bar:1111/someImage:latest")

        assert resolved == ImageReference(
            repository="docker-registry.foo.bar:1111/someImage", tag="latest"
        )

    def test_digest_takes_the_tag_place(self):
        resolved = resolve(f"node:6@{DIGEST}")

        assert resolved.repository == "node"
        assert resolved.tag == DIGEST
        assert str(resolved) == f"node@{DIGEST}"

    def test_str_joins_repository_and_tag(self):
        assert str(resolve("screwdrivercd/launcher:stable")) == "screwdrivercd/launcher:stable"

    @pytest.mark.parametrize(
        "reference",
        [
            "",
            "node:",
            "node: 6",
            " node",
            "a//b",
            "/node",
            "node/",
            "no$de:6",
            "node:bad/tag",
            "node@sha256:xyz",
            "node:" + "a" * 129,
        ],
    )
    def test_malformed_references_raise(self, reference):
        with pytest.raises(ImageResolutionError):
            resolve(reference)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError, match="Invalid image reference"):
            resolve("node:")
