"""
Docker Engine API runtime.

Async client for the subset of the Docker Engine HTTP API the executor
uses, over the daemon's unix socket or TCP (optionally TLS).

Usage:
    async with DockerRuntime(DockerConnection(socket_path="/var/run/docker.sock")) as docker:
        await docker.pull_image("node", "6")
        handle = await docker.create_container(spec)
        await docker.start_container(handle)

API Reference:
    https://docs.docker.com/engine/api/

Errors:
    - 404 -> ContainerNotFoundError
    - 409 -> RuntimeConflictError
    - other non-2xx, network and protocol errors -> RuntimeCallError
    - error lines inside a pull progress stream -> RuntimeCallError
"""

from __future__ import annotations

import json
import logging
import ssl
from typing import TYPE_CHECKING, Any

import httpx

from ..errors import ContainerNotFoundError, RuntimeCallError, RuntimeConflictError
from .base import ContainerHandle

if TYPE_CHECKING:
    from ..config.schemas import DockerConnection
    from ..models import ContainerSpec
    from ..naming import TrackingLabel

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_PATH = "/var/run/docker.sock"


def _ssl_context(connection: DockerConnection) -> ssl.SSLContext | bool:
    """Build the TLS context for https connections, True for system defaults."""
    if not (connection.ca or connection.cert):
        return True
    context = ssl.create_default_context(cafile=connection.ca)
    if connection.cert:
        context.load_cert_chain(connection.cert, connection.key)
    return context


def container_payload(spec: ContainerSpec) -> dict[str, Any]:
    """
    Convert a ContainerSpec into a /containers/create request body.

    Optional fields are omitted rather than sent as null.
    """
    body: dict[str, Any] = {
        "Image": spec.image,
        "Labels": dict(spec.labels),
    }
    if spec.entrypoint is not None:
        body["Entrypoint"] = spec.entrypoint
    if spec.command:
        body["Cmd"] = list(spec.command)
    if spec.env:
        body["Env"] = [f"{key}={value}" for key, value in spec.env.items()]

    host_config: dict[str, Any] = {}
    if spec.memory_bytes is not None:
        host_config["Memory"] = spec.memory_bytes
    if spec.memory_swap_bytes is not None:
        host_config["MemorySwap"] = spec.memory_swap_bytes
    if spec.volumes_from:
        host_config["VolumesFrom"] = list(spec.volumes_from)
    if spec.privileged:
        host_config["Privileged"] = True
    if spec.binds:
        host_config["Binds"] = list(spec.binds)
    if host_config:
        body["HostConfig"] = host_config
    return body


class DockerRuntime:
    """
    ContainerRuntime backed by the Docker Engine API.

    Performs no retries: fault handling belongs to the circuit breaker
    wrapping this runtime.
    """

    name = "docker"

    def __init__(
        self,
        connection: DockerConnection,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Docker runtime.

        Args:
            connection: How to reach the daemon
            transport: Override the HTTP transport (tests use httpx.MockTransport)
        """
        self.connection = connection
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _api_path(self, path: str) -> str:
        if self.connection.api_version:
            return f"/{self.connection.api_version.strip('/')}{path}"
        return path

    def _build_transport(self) -> httpx.AsyncBaseTransport:
        if self._transport is not None:
            return self._transport
        if self.connection.uses_socket:
            return httpx.AsyncHTTPTransport(uds=self.connection.socket_path or DEFAULT_SOCKET_PATH)
        if self.connection.protocol == "https":
            return httpx.AsyncHTTPTransport(verify=_ssl_context(self.connection))
        return httpx.AsyncHTTPTransport()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.connection.base_url,
                transport=self._build_transport(),
                # Pulls can stream for minutes; the breaker owns the call deadline
                timeout=httpx.Timeout(None, connect=self.connection.connect_timeout),
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Execute a single Engine API request.

        Raises:
            RuntimeCallError: On network errors or non-2xx responses
        """
        client = await self._get_client()
        url = self._api_path(path)
        logger.debug(f"[{self.name}] {operation}: {method} {url} params={params}")

        try:
            response = await client.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            raise RuntimeCallError(
                f"{operation} failed: {e}",
                operation,
            ) from e

        self._check_response(operation, response)
        return response

    def _check_response(self, operation: str, response: httpx.Response) -> None:
        """Map Engine API error statuses to exceptions."""
        if response.is_success or response.status_code == 304:
            return

        status = response.status_code
        body = response.text
        message = _error_message(body) or f"{operation} failed with status {status}"

        if status == 404:
            raise ContainerNotFoundError(message, operation, status_code=status, response_body=body)
        if status == 409:
            raise RuntimeConflictError(message, operation, status_code=status, response_body=body)
        raise RuntimeCallError(message, operation, status_code=status, response_body=body)

    # =========================================================================
    # Images
    # =========================================================================

    async def pull_image(self, repository: str, tag: str) -> None:
        """
        Pull an image.

        The Engine answers 200 and then streams JSON progress lines; a
        failed pull shows up as a line with an "error" key.
        """
        response = await self._request(
            "pull_image",
            "POST",
            "/images/create",
            params={"fromImage": repository, "tag": tag},
        )
        for line in response.text.splitlines():
            if not line.strip():
                continue
            try:
                progress = json.loads(line)
            except ValueError:
                continue
            if isinstance(progress, dict) and progress.get("error"):
                raise RuntimeCallError(
                    str(progress["error"]),
                    "pull_image",
                    status_code=response.status_code,
                    response_body=line,
                )
        logger.info(f"[{self.name}] Pulled {repository}:{tag}")

    # =========================================================================
    # Containers
    # =========================================================================

    async def create_container(self, spec: ContainerSpec) -> ContainerHandle:
        response = await self._request(
            "create_container",
            "POST",
            "/containers/create",
            params={"name": spec.name},
            json=container_payload(spec),
        )
        data = response.json()
        for warning in data.get("Warnings") or []:
            logger.warning(f"[{self.name}] create {spec.name}: {warning}")
        return ContainerHandle(id=data["Id"], name=spec.name)

    async def start_container(self, handle: ContainerHandle) -> None:
        await self._request(
            "start_container",
            "POST",
            f"/containers/{handle.id}/start",
        )

    async def list_containers(
        self,
        label: TrackingLabel,
        *,
        include_stopped: bool = True,
    ) -> list[ContainerHandle]:
        """
        List containers carrying the label.

        Args:
            label: Tracking label to filter on
            include_stopped: Include exited and created containers

        Returns:
            Handles of matching containers
        """
        response = await self._request(
            "list_containers",
            "GET",
            "/containers/json",
            params={
                "all": "true" if include_stopped else "false",
                "filters": json.dumps({"label": [label.as_filter()]}),
            },
        )
        return [
            ContainerHandle(id=item["Id"], name=_container_name(item))
            for item in response.json()
        ]

    async def remove_container(
        self,
        handle: ContainerHandle,
        *,
        delete_volumes: bool = True,
        force: bool = True,
    ) -> None:
        await self._request(
            "remove_container",
            "DELETE",
            f"/containers/{handle.id}",
            params={
                "v": "true" if delete_volumes else "false",
                "force": "true" if force else "false",
            },
        )

    async def __aenter__(self) -> DockerRuntime:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


def _error_message(body: str) -> str | None:
    """Extract the Engine's {"message": ...} error text."""
    try:
        data = json.loads(body)
    except ValueError:
        return body.strip() or None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return None


def _container_name(item: dict[str, Any]) -> str | None:
    names = item.get("Names") or []
    if not names:
        return None
    return names[0].lstrip("/")


__all__ = ["DEFAULT_SOCKET_PATH", "DockerRuntime", "container_payload"]
