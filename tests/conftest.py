from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from telegraph_fakes import FakeTelegraphClient

from backend.app.dependencies import get_dispatcher, reset_cached_dependencies
from backend.app.main import create_app
from backend.app.services.tool_dispatcher import ToolDispatcher

_APP_LOGGER_NAMES: tuple[str, ...] = (
    "telegraph_tools",
    "telegraph_tools.telemetry",
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
)


@pytest.fixture(autouse=True)
def _isolated_environment(  # pyright: ignore[reportUnusedFunction]
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("TELEGRAPH_TOOLS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TELEGRAPH_TOOLS_CLI_CONFIG", str(tmp_path / "cli" / "config.yaml"))
    reset_cached_dependencies()
    yield
    reset_cached_dependencies()
    for logger_name in _APP_LOGGER_NAMES:
        logger = logging.getLogger(logger_name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True


@pytest.fixture
def fake_client() -> FakeTelegraphClient:
    return FakeTelegraphClient()


@pytest.fixture
def dispatcher(fake_client: FakeTelegraphClient) -> ToolDispatcher:
    return ToolDispatcher(telegraph_client=fake_client)


@pytest.fixture
def client(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    dispatcher: ToolDispatcher,
) -> Iterator[TestClient]:
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("TELEGRAPH_TOOLS_DATA_DIR", str(data_dir))
    reset_cached_dependencies()

    app = create_app()
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()
