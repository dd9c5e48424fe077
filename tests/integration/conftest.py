import time
from collections.abc import Awaitable, Callable
from pathlib import Path

import anyio
import psutil
import pytest


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def wait_until_gone() -> Callable[[int], Awaitable[bool]]:
    """Poll until a process has exited; zombies count as gone."""

    async def _wait(pid: int, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            try:
                if psutil.Process(pid).status() == psutil.STATUS_ZOMBIE:
                    return True
            except psutil.NoSuchProcess:
                return True
            await anyio.sleep(0.05)
        return False

    return _wait
