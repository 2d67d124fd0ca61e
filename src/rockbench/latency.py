import asyncio
import logging
import random

from rockbench.config import Settings
from rockbench.destination import Destination
from rockbench.documents import current_time_micros
from rockbench.errors import DestinationError
from rockbench.metrics import record_e2e_latency

logger = logging.getLogger(__name__)


async def _stopped_within(stop: asyncio.Event, seconds: float) -> bool:
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except TimeoutError:
        return False
    return True


async def track_latency(
    destination: Destination,
    settings: Settings,
    stop: asyncio.Event,
    rng: random.Random | None = None,
) -> None:
    # keep the total query rate against the store steady as replicas are added
    period = settings.replicas * settings.latency_poll_seconds
    initial = (rng or random).uniform(0, period)
    logger.info("Initial latency sleep of %.1fs and polling period of %.1fs", initial, period)
    if await _stopped_within(stop, initial):
        return
    while not await _stopped_within(stop, period):
        try:
            latest = await destination.get_latest_timestamp()
        except DestinationError as e:
            logger.warning("failed to get latest timestamp: %s", e)
            continue
        latency = current_time_micros() - latest
        logger.info("Latency: %.3fs", latency / 1_000_000)
        record_e2e_latency(latency)
