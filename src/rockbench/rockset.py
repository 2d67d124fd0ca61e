import json
from typing import Any

import httpx

from rockbench.errors import DestinationError
from rockbench.metrics import record_bytes_sent, record_events_ingested
from rockbench.transport import send


class Rockset:
    """Writes to a Rockset collection through the documents API."""

    explicit_ids = True

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        api_server: str,
        collection_path: str,
        generator_identifier: str,
    ) -> None:
        self._client = client
        self._api_server = api_server.rstrip("/")
        self._headers = {"Authorization": f"ApiKey {api_key}", "Content-Type": "application/json"}
        self.workspace, self.collection = collection_path.split(".")
        self.generator_identifier = generator_identifier

    @property
    def docs_url(self) -> str:
        return f"{self._api_server}/v1/orgs/self/ws/{self.workspace}/collections/{self.collection}/docs"

    async def send_documents(self, docs: list[dict[str, Any]]) -> None:
        record_events_ingested(len(docs))
        body = json.dumps({"data": docs}).encode()
        await send(self._client, "POST", self.docs_url, content=body, headers=self._headers)
        record_bytes_sent(len(body))

    async def send_patches(self, patches: list[dict[str, Any]]) -> None:
        body = json.dumps({"data": patches}).encode()
        await send(self._client, "PATCH", self.docs_url, content=body, headers=self._headers)
        record_bytes_sent(len(body))

    async def get_latest_timestamp(self) -> int:
        query = (
            f'select _ts as ts from "{self.workspace}"."{self.collection}" '
            f"where generator_identifier = '{self.generator_identifier}' ORDER BY _ts DESC limit 1"
        )
        body = json.dumps({"sql": {"query": query}}).encode()
        response = await send(
            self._client,
            "POST",
            f"{self._api_server}/v1/orgs/self/queries",
            content=body,
            headers=self._headers,
        )
        # {"results": [{"ts": 1000000}]}
        try:
            results = response.json()["results"]
            if not results:
                raise DestinationError("could not find the document")
            ts = results[0].get("ts")
            if ts is None:
                raise DestinationError("malformed result, ts is missing")
            return int(ts)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise DestinationError(f"malformed query response: {response.text}") from e

    async def configure(self) -> None:
        return None
