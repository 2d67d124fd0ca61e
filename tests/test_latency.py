import asyncio
import random

import httpx
from prometheus_client import REGISTRY

from conftest import RecordingDestination
from rockbench.documents import current_time_micros
from rockbench.errors import DestinationError
from rockbench.latency import track_latency
from rockbench.rockset import Rockset


class LaggingDestination(RecordingDestination):
    def __init__(self, lag_micros: int, failures: int = 0) -> None:
        super().__init__()
        self.lag_micros = lag_micros
        self.failures = failures
        self.calls = 0

    async def get_latest_timestamp(self) -> int:
        self.calls += 1
        if self.calls <= self.failures:
            raise DestinationError("query failed")
        return current_time_micros() - self.lag_micros


async def test_track_latency_records_lag(make_settings) -> None:
    settings = make_settings(replicas=1, latency_poll_seconds=0.01)
    destination = LaggingDestination(lag_micros=5_000_000)
    before = REGISTRY.get_sample_value("e2e_latencies_metric_count") or 0
    stop = asyncio.Event()
    task = asyncio.create_task(track_latency(destination, settings, stop, random.Random(1)))
    await asyncio.sleep(0.1)
    stop.set()
    await asyncio.wait_for(task, timeout=1)
    assert destination.calls > 0
    assert REGISTRY.get_sample_value("e2e_latencies") >= 5_000_000
    assert REGISTRY.get_sample_value("e2e_latencies_metric_count") - before == destination.calls


async def test_track_latency_survives_query_failures(make_settings) -> None:
    settings = make_settings(replicas=1, latency_poll_seconds=0.01)
    destination = LaggingDestination(lag_micros=1_000, failures=2)
    stop = asyncio.Event()
    task = asyncio.create_task(track_latency(destination, settings, stop, random.Random(2)))
    await asyncio.sleep(0.1)
    stop.set()
    await asyncio.wait_for(task, timeout=1)
    assert destination.calls > 2


async def test_track_latency_stops_during_initial_sleep(make_settings) -> None:
    settings = make_settings(replicas=2, latency_poll_seconds=30)
    destination = LaggingDestination(lag_micros=0)
    stop = asyncio.Event()
    stop.set()
    await asyncio.wait_for(track_latency(destination, settings, stop), timeout=1)
    assert destination.calls == 0


async def test_track_latency_keeps_polling_after_malformed_reply(make_settings) -> None:
    replies = [{"results": [{"ts": "not-a-number"}]}, {"results": ["x"]}]
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        body = replies.pop(0) if replies else {"results": [{"ts": current_time_micros() - 2_000}]}
        return httpx.Response(200, json=body)

    settings = make_settings(replicas=1, latency_poll_seconds=0.01)
    before = REGISTRY.get_sample_value("e2e_latencies_metric_count") or 0
    stop = asyncio.Event()
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        rockset = Rockset(
            client,
            api_key="key",
            api_server="https://api.rockset.test",
            collection_path="ws.coll",
            generator_identifier="gen",
        )
        task = asyncio.create_task(track_latency(rockset, settings, stop, random.Random(3)))
        await asyncio.sleep(0.1)
        stop.set()
        await asyncio.wait_for(task, timeout=1)
    assert calls > 2
    assert REGISTRY.get_sample_value("e2e_latencies_metric_count") - before == calls - 2
