import asyncio
import logging
import sys

from pydantic import ValidationError

from rockbench.app import create_app, start_status_server
from rockbench.config import Settings
from rockbench.dependencies import get_settings
from rockbench.destination import build_destination
from rockbench.documents import random_identifier
from rockbench.errors import DestinationError, GenerationError
from rockbench.ids import IdSpace
from rockbench.latency import track_latency
from rockbench.logging_setup import configure_logging
from rockbench.scheduler import Dispatcher
from rockbench.shutdown import ShutdownHandler
from rockbench.transport import create_client

logger = logging.getLogger("rockbench")


async def run(settings: Settings) -> None:
    identifier = random_identifier()
    logger.info("Generator identifier: %s", identifier)
    async with create_client() as client:
        destination = build_destination(settings, client, identifier)
        await destination.configure()
        spec = settings.workload_spec(identifier, explicit_ids=destination.explicit_ids)
        dispatcher = Dispatcher(settings, spec, destination, IdSpace())
        ShutdownHandler(dispatcher).install(asyncio.get_running_loop())
        if settings.export_metrics:
            start_status_server(create_app(dispatcher), settings.metrics_port)
            logger.info("Serving metrics on :%d/metrics", settings.metrics_port)
        tasks = []
        if settings.track_latency:
            tasks.append(asyncio.create_task(track_latency(destination, settings, dispatcher.stop_event)))
        try:
            await dispatcher.run()
        finally:
            dispatcher.stop()
            for task in tasks:
                task.cancel()
    logger.info("done")


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging("INFO")
        logger.error("Invalid configuration: %s", e)
        sys.exit(2)
    configure_logging(settings.log_level)
    try:
        asyncio.run(run(settings))
    except GenerationError as e:
        logger.error("Generation failed: %s", e)
        sys.exit(1)
    except DestinationError as e:
        logger.error("Unable to configure destination: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
