import random
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from rockbench.app import create_app
from rockbench.config import Settings
from rockbench.errors import DestinationError
from rockbench.ids import IdSpace
from rockbench.scheduler import Dispatcher


class RecordingDestination:
    explicit_ids = True

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.document_batches: list[list[dict[str, Any]]] = []
        self.patch_batches: list[list[dict[str, Any]]] = []

    async def send_documents(self, docs: list[dict[str, Any]]) -> None:
        if self.fail:
            raise DestinationError("boom", status_code=500)
        self.document_batches.append(docs)

    async def send_patches(self, patches: list[dict[str, Any]]) -> None:
        if self.fail:
            raise DestinationError("boom", status_code=500)
        self.patch_batches.append(patches)

    async def get_latest_timestamp(self) -> int:
        return 0

    async def configure(self) -> None:
        return None


@pytest.fixture
def make_settings():
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {"wps": 2, "batch_size": 3, "destination": "null"}
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def destination() -> RecordingDestination:
    return RecordingDestination()


@pytest.fixture
def make_dispatcher(make_settings, destination: RecordingDestination):
    def _make(dest: Any = None, **overrides: Any) -> Dispatcher:
        settings = make_settings(**overrides)
        return Dispatcher(
            settings,
            settings.workload_spec("test-gen"),
            dest or destination,
            IdSpace(),
            tick_interval=0.01,
            rng=random.Random(7),
        )

    return _make


@pytest.fixture
def dispatcher(make_dispatcher) -> Dispatcher:
    return make_dispatcher()


@pytest.fixture
async def client(dispatcher: Dispatcher) -> AsyncClient:
    app = create_app(dispatcher)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
