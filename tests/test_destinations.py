import json

import httpx
import pytest

from rockbench.destination import Null, build_destination
from rockbench.documents import current_time_micros
from rockbench.elastic import Elastic
from rockbench.errors import DestinationError
from rockbench.rockset import Rockset

SERVER = "https://api.rockset.test"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _replying(status_code: int, body: dict | None = None, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body or {})

    return handler


def _rockset(client: httpx.AsyncClient) -> Rockset:
    return Rockset(client, api_key="key", api_server=SERVER, collection_path="ws.coll", generator_identifier="gen")


def _elastic(client: httpx.AsyncClient) -> Elastic:
    return Elastic(client, auth="Basic abc", url="https://es.test", index_name="bench", generator_identifier="GenId")


async def test_rockset_send_documents() -> None:
    seen: list[httpx.Request] = []
    async with _client(_replying(200, seen=seen)) as client:
        await _rockset(client).send_documents([{"_id": "1", "a": 1}])
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == f"{SERVER}/v1/orgs/self/ws/ws/collections/coll/docs"
    assert request.headers["Authorization"] == "ApiKey key"
    assert json.loads(request.content) == {"data": [{"_id": "1", "a": 1}]}


async def test_rockset_send_patches_uses_patch() -> None:
    seen: list[httpx.Request] = []
    patch = {"_id": "1", "patch": [{"op": "add", "path": "/_ts", "value": 1}]}
    async with _client(_replying(200, seen=seen)) as client:
        await _rockset(client).send_patches([patch])
    assert seen[0].method == "PATCH"
    assert json.loads(seen[0].content) == {"data": [patch]}


async def test_rockset_error_status_raises() -> None:
    async with _client(_replying(500, {"message": "down"})) as client:
        with pytest.raises(DestinationError) as exc_info:
            await _rockset(client).send_documents([{"a": 1}])
    assert exc_info.value.status_code == 500
    assert "down" in exc_info.value.body


async def test_transport_error_raises() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async with _client(refuse) as client:
        with pytest.raises(DestinationError):
            await _rockset(client).send_documents([{"a": 1}])


async def test_rockset_latest_timestamp() -> None:
    expected = current_time_micros()
    seen: list[httpx.Request] = []
    async with _client(_replying(200, {"results": [{"ts": expected}]}, seen)) as client:
        assert await _rockset(client).get_latest_timestamp() == expected
    query = json.loads(seen[0].content)["sql"]["query"]
    assert str(seen[0].url) == f"{SERVER}/v1/orgs/self/queries"
    assert "generator_identifier = 'gen'" in query
    assert '"ws"."coll"' in query


async def test_rockset_latest_timestamp_empty_result() -> None:
    async with _client(_replying(200, {"results": []})) as client:
        with pytest.raises(DestinationError):
            await _rockset(client).get_latest_timestamp()


@pytest.mark.parametrize(
    "body",
    [
        {"results": [{"ts": "not-a-number"}]},
        {"results": ["x"]},
        {"results": [{}]},
        {"results": None},
    ],
)
async def test_rockset_latest_timestamp_malformed_result(body: dict) -> None:
    async with _client(_replying(200, body)) as client:
        with pytest.raises(DestinationError):
            await _rockset(client).get_latest_timestamp()


async def test_elastic_bulk_body_moves_id_to_action() -> None:
    seen: list[httpx.Request] = []
    async with _client(_replying(200, seen=seen)) as client:
        await _elastic(client).send_documents([{"_id": "7", "a": 1}, {"b": 2}])
    request = seen[0]
    assert str(request.url) == "https://es.test/_bulk"
    assert request.headers["Content-Type"] == "application/x-ndjson"
    assert request.headers["Authorization"] == "Basic abc"
    lines = [json.loads(line) for line in request.content.decode().strip().split("\n")]
    assert lines[0] == {"index": {"_index": "bench", "_id": "7"}}
    assert lines[1] == {"a": 1}
    assert lines[2]["index"]["_id"]
    assert lines[3] == {"b": 2}


async def test_elastic_latest_timestamp() -> None:
    body = {"aggregations": {"max_event_time_for_identifier": {"max_event_time": {"value": 1.677014840315018e15}}}}
    seen: list[httpx.Request] = []
    async with _client(_replying(200, body, seen)) as client:
        assert await _elastic(client).get_latest_timestamp() == 1677014840315018
    query = json.loads(seen[0].content)
    assert query["aggs"]["max_event_time_for_identifier"]["filter"] == {"term": {"generator_identifier": "genid"}}
    assert str(seen[0].url) == "https://es.test/bench/_search?size=0"


async def test_elastic_latest_timestamp_without_value() -> None:
    body = {"aggregations": {"max_event_time_for_identifier": {"max_event_time": {"value": None}}}}
    async with _client(_replying(200, body)) as client:
        with pytest.raises(DestinationError):
            await _elastic(client).get_latest_timestamp()


@pytest.mark.parametrize(
    "value",
    ["not-a-number", {"nested": 1}],
)
async def test_elastic_latest_timestamp_malformed_value(value) -> None:
    body = {"aggregations": {"max_event_time_for_identifier": {"max_event_time": {"value": value}}}}
    async with _client(_replying(200, body)) as client:
        with pytest.raises(DestinationError):
            await _elastic(client).get_latest_timestamp()


async def test_elastic_latest_timestamp_unexpected_shape() -> None:
    async with _client(_replying(200, {"aggregations": ["x"]})) as client:
        with pytest.raises(DestinationError):
            await _elastic(client).get_latest_timestamp()


async def test_elastic_rejects_patches() -> None:
    async with _client(_replying(200)) as client:
        with pytest.raises(DestinationError):
            await _elastic(client).send_patches([{"_id": "1", "patch": []}])


async def test_null_destination() -> None:
    null = Null()
    await null.send_documents([{"a": 1}])
    await null.send_patches([])
    assert await null.get_latest_timestamp() < current_time_micros()


async def test_build_destination(make_settings) -> None:
    async with _client(_replying(200)) as client:
        assert isinstance(build_destination(make_settings(), client, "gen"), Null)
        rockset = build_destination(
            make_settings(
                destination="Rockset",
                rockset_api_key="key",
                rockset_api_server=SERVER,
                rockset_collection="ws.coll",
            ),
            client,
            "gen",
        )
        assert isinstance(rockset, Rockset)
        assert rockset.collection == "coll"
        elastic = build_destination(
            make_settings(destination="elastic", elastic_auth="a", elastic_url="https://es.test", elastic_index="i"),
            client,
            "gen",
        )
        assert isinstance(elastic, Elastic)
