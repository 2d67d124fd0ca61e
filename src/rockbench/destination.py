from typing import Any, Protocol

import httpx

from rockbench.config import Settings
from rockbench.documents import current_time_micros
from rockbench.elastic import Elastic
from rockbench.rockset import Rockset
from rockbench.workload import DestinationKind


class Destination(Protocol):
    explicit_ids: bool

    async def send_documents(self, docs: list[dict[str, Any]]) -> None: ...

    async def send_patches(self, patches: list[dict[str, Any]]) -> None: ...

    async def get_latest_timestamp(self) -> int: ...

    async def configure(self) -> None: ...


class Null:
    """Accepts everything; for running the generator without a store."""

    explicit_ids = True

    async def send_documents(self, docs: list[dict[str, Any]]) -> None:
        return None

    async def send_patches(self, patches: list[dict[str, Any]]) -> None:
        return None

    async def get_latest_timestamp(self) -> int:
        return current_time_micros() - 10_000

    async def configure(self) -> None:
        return None


def build_destination(settings: Settings, client: httpx.AsyncClient, identifier: str) -> Destination:
    if settings.destination is DestinationKind.ROCKSET:
        return Rockset(
            client,
            api_key=settings.rockset_api_key,
            api_server=settings.rockset_api_server,
            collection_path=settings.rockset_collection,
            generator_identifier=identifier,
        )
    if settings.destination is DestinationKind.ELASTIC:
        return Elastic(
            client,
            auth=settings.elastic_auth,
            url=settings.elastic_url,
            index_name=settings.elastic_index,
            generator_identifier=identifier,
        )
    if settings.destination is DestinationKind.NULL:
        return Null()
    raise ValueError(f"unsupported destination {settings.destination}")
