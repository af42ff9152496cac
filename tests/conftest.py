from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient


def pytest_configure() -> None:
    # Keep tests off the developer's .env and away from real latency.
    os.environ["ENVIRONMENT"] = "test"
    os.environ["STORE_DURABLE"] = "false"
    os.environ["TRANSPORT"] = "direct"
    os.environ["FAILURE_RATE"] = "0"


def _sql_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'talentflow-test.db'}"


@pytest.fixture()
def memory_storage() -> Any:
    from talentflow.db.memory_store import MemoryStorageBackend

    storage = MemoryStorageBackend(name="test")
    asyncio.run(storage.open())
    return storage


@pytest.fixture()
def sql_storage(tmp_path: Path) -> Any:
    from talentflow.db.sql_store import SqlStorageBackend

    storage = SqlStorageBackend(_sql_url(tmp_path), name="test")
    asyncio.run(storage.open())
    yield storage
    asyncio.run(storage.close())


@pytest.fixture(params=["memory", "sql"])
def storage(request: pytest.FixtureRequest) -> Any:
    # Both backends honour the same contract.
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture()
def api(memory_storage: Any) -> Any:
    from talentflow.client import TalentFlowClient
    from talentflow.services.network import DirectTransport

    return TalentFlowClient(memory_storage, DirectTransport())


@pytest.fixture()
def settings() -> Any:
    from talentflow.config import Settings

    return Settings().model_copy(
        update={"store_durable": False, "transport": "direct", "failure_rate": 0.0, "seed_random": 11}
    )


@pytest.fixture()
def client(settings: Any) -> Any:
    from talentflow.main import create_app

    app = create_app(settings)
    with TestClient(app) as c:
        yield c
