"""
Pytest configuration and fixtures for executor tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add the repository root to path for imports
# This allows `from executor_docker import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from executor_docker.config import Ecosystem, ExecutorSettings  # noqa: E402
from executor_docker.runtime import ContainerHandle  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ecosystem():
    return Ecosystem(api="api", store="store", ui="ui")


@pytest.fixture
def settings(ecosystem):
    return ExecutorSettings(ecosystem=ecosystem)


@pytest.fixture
def mock_runtime():
    """
    AsyncMock runtime.

    Support containers get id "launcherID", build containers "buildID";
    list_containers finds two containers.
    """
    runtime = AsyncMock()

    async def create_container(spec):
        container_id = "launcherID" if spec.name.endswith("-init") else "buildID"
        return ContainerHandle(id=container_id, name=spec.name)

    runtime.create_container.side_effect = create_container
    runtime.list_containers.return_value = [
        ContainerHandle(id="containerA", name="1992-init"),
        ContainerHandle(id="containerB", name="1992-build"),
    ]
    return runtime


@pytest.fixture
def build_config():
    """Start payload as the pipeline orchestrator sends it."""
    return {
        "buildId": 1992,
        "container": "node:6",
        "apiUri": "https://api.sd.cd",
        "token": "123456",
    }
