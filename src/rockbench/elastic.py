import json
import uuid
from typing import Any

import httpx

from rockbench.errors import DestinationError
from rockbench.metrics import record_bytes_sent, record_events_ingested
from rockbench.transport import send


class Elastic:
    """Indexes documents through the Elasticsearch ``_bulk`` API."""

    # _id is a metadata field in Elastic, so it travels in the bulk action line
    explicit_ids = True

    def __init__(
        self,
        client: httpx.AsyncClient,
        auth: str,
        url: str,
        index_name: str,
        generator_identifier: str,
    ) -> None:
        self._client = client
        self._url = url.rstrip("/")
        self._auth = auth
        self.index_name = index_name
        self.generator_identifier = generator_identifier

    def bulk_body(self, docs: list[dict[str, Any]]) -> tuple[bytes, int]:
        """Return the NDJSON body and the number of document payload bytes in it."""
        lines: list[str] = []
        payload_bytes = 0
        for doc in docs:
            source = dict(doc)
            doc_id = source.pop("_id", None) or str(uuid.uuid4())
            line = json.dumps(source)
            lines.append(json.dumps({"index": {"_index": self.index_name, "_id": doc_id}}))
            lines.append(line)
            payload_bytes += len(line)
        return ("\n".join(lines) + "\n").encode(), payload_bytes

    async def send_documents(self, docs: list[dict[str, Any]]) -> None:
        record_events_ingested(len(docs))
        body, payload_bytes = self.bulk_body(docs)
        await send(
            self._client,
            "POST",
            f"{self._url}/_bulk",
            content=body,
            headers={"Authorization": self._auth, "Content-Type": "application/x-ndjson"},
        )
        record_bytes_sent(payload_bytes)

    async def send_patches(self, patches: list[dict[str, Any]]) -> None:
        raise DestinationError("patches are not supported for elastic")

    async def get_latest_timestamp(self) -> int:
        # term queries are case-sensitive and text is indexed lower-cased
        query = {
            "aggs": {
                "max_event_time_for_identifier": {
                    "filter": {"term": {"generator_identifier": self.generator_identifier.lower()}},
                    "aggs": {"max_event_time": {"max": {"field": "_event_time"}}},
                }
            }
        }
        response = await send(
            self._client,
            "POST",
            f"{self._url}/{self.index_name}/_search?size=0",
            content=json.dumps(query).encode(),
            headers={"Authorization": self._auth, "Content-Type": "application/json"},
        )
        try:
            value = response.json()["aggregations"]["max_event_time_for_identifier"]["max_event_time"]["value"]
            if value is None:
                raise DestinationError("malformed result, value is nil")
            return int(value)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise DestinationError(f"malformed search response: {response.text}") from e

    async def configure(self) -> None:
        return None
