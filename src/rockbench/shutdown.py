import asyncio
import logging
import os
import signal

from rockbench.scheduler import Dispatcher

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHandler:
    """First signal stops dispatch before the next tick; a second one exits immediately."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher
        self.received = 0

    def __call__(self, sig: signal.Signals) -> None:
        self.received += 1
        if self.received > 1:
            logger.warning("Second signal received (%s), exiting", sig.name)
            os._exit(1)
        logger.info("Signal received: %s", sig.name)
        self.dispatcher.stop()

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in HANDLED_SIGNALS:
            loop.add_signal_handler(sig, self, sig)
