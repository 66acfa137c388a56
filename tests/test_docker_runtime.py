"""
Tests for the Docker Engine API runtime and its fault-isolated wrapper.

Tests cover:
- Request shapes for pull/create/start/list/remove
- Error mapping (404, 409, 5xx, network errors, pull stream errors)
- API version prefix
- Breaker integration in FaultIsolatedRuntime
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from executor_docker.config import DockerConnection
from executor_docker.errors import (
    CircuitOpenError,
    ContainerNotFoundError,
    RuntimeCallError,
    RuntimeConflictError,
)
from executor_docker.models import ContainerSpec
from executor_docker.naming import tracking_label
from executor_docker.resilience import CircuitBreaker
from executor_docker.runtime import (
    ContainerHandle,
    DockerRuntime,
    FaultIsolatedRuntime,
    container_payload,
)

# =============================================================================
# Fixtures
# =============================================================================


class RecordingHandler:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, response: httpx.Response | Exception | None = None):
        self.requests: list[httpx.Request] = []
        self.response = response if response is not None else httpx.Response(204)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_runtime(handler, **connection):
    return DockerRuntime(
        DockerConnection(**connection),
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def spec():
    return ContainerSpec(
        name="1992-build",
        image="node:6",
        entrypoint="/opt/sd/launcher_entrypoint.sh",
        command=('/opt/sd/run.sh "123456" api store 90 1992 ui',),
        env={"SD_DEBUG": "1"},
        labels={"sdbuild": "1992"},
        memory_bytes=2,
        memory_swap_bytes=3,
        volumes_from=("launcherID:rw",),
        privileged=True,
        binds=("/var/run/docker.sock:/var/run/docker.sock",),
    )


# =============================================================================
# Payloads
# =============================================================================


class TestContainerPayload:
    def test_full_spec(self, spec):
        assert container_payload(spec) == {
            "Image": "node:6",
            "Labels": {"sdbuild": "1992"},
            "Entrypoint": "/opt/sd/launcher_entrypoint.sh",
            "Cmd": ['/opt/sd/run.sh "123456" api store 90 1992 ui'],
            "Env": ["SD_DEBUG=1"],
            "HostConfig": {
                "Memory": 2,
                "MemorySwap": 3,
                "VolumesFrom": ["launcherID:rw"],
                "Privileged": True,
                "Binds": ["/var/run/docker.sock:/var/run/docker.sock"],
            },
        }

    def test_minimal_spec_omits_optional_fields(self):
        spec = ContainerSpec(
            name="1992-init",
            image="screwdrivercd/launcher:stable",
            entrypoint="/bin/true",
            labels={"sdbuild": "1992"},
        )

        assert container_payload(spec) == {
            "Image": "screwdrivercd/launcher:stable",
            "Labels": {"sdbuild": "1992"},
            "Entrypoint": "/bin/true",
        }


# =============================================================================
# DockerRuntime
# =============================================================================


class TestDockerRuntime:
    @pytest.mark.asyncio
    async def test_pull_image(self):
        handler = RecordingHandler(
            httpx.Response(200, text='{"status":"Pulling from library/node"}\n{"status":"Done"}\n')
        )
        async with make_runtime(handler) as runtime:
            await runtime.pull_image("node", "6")

        request = handler.last
        assert request.method == "POST"
        assert request.url.path == "/images/create"
        assert request.url.params["fromImage"] == "node"
        assert request.url.params["tag"] == "6"

    @pytest.mark.asyncio
    async def test_pull_stream_error_fails(self):
        handler = RecordingHandler(
            httpx.Response(200, text='{"status":"Pulling"}\n{"error":"manifest unknown"}\n')
        )
        runtime = make_runtime(handler)

        with pytest.raises(RuntimeCallError, match="manifest unknown") as exc_info:
            await runtime.pull_image("node", "nope")

        assert exc_info.value.operation == "pull_image"

    @pytest.mark.asyncio
    async def test_create_container(self, spec):
        handler = RecordingHandler(httpx.Response(201, json={"Id": "buildID", "Warnings": []}))
        runtime = make_runtime(handler)

        handle = await runtime.create_container(spec)

        assert handle == ContainerHandle(id="buildID", name="1992-build")
        request = handler.last
        assert request.url.path == "/containers/create"
        assert request.url.params["name"] == "1992-build"
        assert json.loads(request.content) == container_payload(spec)

    @pytest.mark.asyncio
    async def test_create_conflict(self, spec):
        handler = RecordingHandler(
            httpx.Response(409, json={"message": "Conflict. The container name is already in use"})
        )
        runtime = make_runtime(handler)

        with pytest.raises(RuntimeConflictError, match="already in use") as exc_info:
            await runtime.create_container(spec)

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_start_container(self):
        handler = RecordingHandler(httpx.Response(204))
        runtime = make_runtime(handler)

        await runtime.start_container(ContainerHandle(id="buildID"))

        assert handler.last.method == "POST"
        assert handler.last.url.path == "/containers/buildID/start"

    @pytest.mark.asyncio
    async def test_start_already_started_is_ok(self):
        runtime = make_runtime(RecordingHandler(httpx.Response(304)))

        await runtime.start_container(ContainerHandle(id="buildID"))

    @pytest.mark.asyncio
    async def test_start_missing_container(self):
        runtime = make_runtime(
            RecordingHandler(httpx.Response(404, json={"message": "No such container: buildID"}))
        )

        with pytest.raises(ContainerNotFoundError, match="No such container"):
            await runtime.start_container(ContainerHandle(id="buildID"))

    @pytest.mark.asyncio
    async def test_list_containers(self):
        handler = RecordingHandler(
            httpx.Response(
                200,
                json=[
                    {"Id": "containerA", "Names": ["/1992-init"]},
                    {"Id": "containerB", "Names": ["/1992-build"]},
                ],
            )
        )
        runtime = make_runtime(handler)

        containers = await runtime.list_containers(tracking_label("", 1992))

        assert containers == [
            ContainerHandle(id="containerA", name="1992-init"),
            ContainerHandle(id="containerB", name="1992-build"),
        ]
        params = handler.last.url.params
        assert handler.last.url.path == "/containers/json"
        assert params["all"] == "true"
        assert json.loads(params["filters"]) == {"label": ["sdbuild=1992"]}

    @pytest.mark.asyncio
    async def test_remove_container(self):
        handler = RecordingHandler(httpx.Response(204))
        runtime = make_runtime(handler)

        await runtime.remove_container(ContainerHandle(id="containerA"))

        request = handler.last
        assert request.method == "DELETE"
        assert request.url.path == "/containers/containerA"
        assert request.url.params["v"] == "true"
        assert request.url.params["force"] == "true"

    @pytest.mark.asyncio
    async def test_server_error(self):
        runtime = make_runtime(RecordingHandler(httpx.Response(500, text="daemon exploded")))

        with pytest.raises(RuntimeCallError, match="daemon exploded") as exc_info:
            await runtime.remove_container(ContainerHandle(id="containerA"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.response_body == "daemon exploded"

    @pytest.mark.asyncio
    async def test_network_error(self):
        runtime = make_runtime(RecordingHandler(httpx.ConnectError("connection refused")))

        with pytest.raises(RuntimeCallError) as exc_info:
            await runtime.list_containers(tracking_label("", 1))

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.operation == "list_containers"

    @pytest.mark.asyncio
    async def test_api_version_prefix(self):
        handler = RecordingHandler(httpx.Response(204))
        runtime = make_runtime(handler, api_version="v1.41")

        await runtime.start_container(ContainerHandle(id="buildID"))

        assert handler.last.url.path == "/v1.41/containers/buildID/start"

    @pytest.mark.asyncio
    async def test_tcp_base_url(self):
        handler = RecordingHandler(httpx.Response(204))
        runtime = make_runtime(handler, host="docker-swarm", port=2375)

        await runtime.start_container(ContainerHandle(id="buildID"))

        assert handler.last.url.host == "docker-swarm"
        assert handler.last.url.port == 2375


# =============================================================================
# FaultIsolatedRuntime
# =============================================================================


class TestFaultIsolatedRuntime:
    @pytest.mark.asyncio
    async def test_passes_calls_through(self, spec):
        inner = AsyncMock()
        inner.create_container.return_value = ContainerHandle(id="buildID")
        runtime = FaultIsolatedRuntime(inner, CircuitBreaker())

        handle = await runtime.create_container(spec)
        await runtime.remove_container(handle, delete_volumes=False, force=True)

        assert handle == ContainerHandle(id="buildID")
        inner.create_container.assert_awaited_once_with(spec)
        inner.remove_container.assert_awaited_once_with(handle, delete_volumes=False, force=True)
        assert runtime.stats()["requests"]["success"] == 2

    @pytest.mark.asyncio
    async def test_errors_pass_through_and_open_the_breaker(self):
        inner = AsyncMock()
        error = RuntimeCallError("Unable to pull image", "pull_image")
        inner.pull_image.side_effect = error
        runtime = FaultIsolatedRuntime(inner, CircuitBreaker(failure_threshold=2))

        for _ in range(2):
            with pytest.raises(RuntimeCallError) as exc_info:
                await runtime.pull_image("node", "6")
            assert exc_info.value is error

        with pytest.raises(CircuitOpenError):
            await runtime.start_container(ContainerHandle(id="buildID"))

        inner.start_container.assert_not_called()
        stats = runtime.stats()
        assert stats["breaker"]["isClosed"] is False
        assert stats["requests"]["total"] == 3
        assert stats["requests"]["failure"] == 3
