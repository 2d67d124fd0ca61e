import asyncio
import logging
import random
from collections.abc import Callable, Coroutine
from enum import StrEnum
from typing import Any

from rockbench import metrics
from rockbench.config import Settings
from rockbench.destination import Destination
from rockbench.documents import DocumentGenerator
from rockbench.errors import DestinationError, GenerationError
from rockbench.ids import IdSpace
from rockbench.patches import PatchTemplateStream, generate_patches
from rockbench.workload import RunMode, WorkloadSpec

logger = logging.getLogger(__name__)


class Phase(StrEnum):
    IDLE = "idle"
    ADD = "add"
    MIXED = "mixed"
    PATCH = "patch"
    DONE = "done"


class Dispatcher:
    """Tick-driven dispatch of document and patch batches to a destination.

    Every tick issues ``wps`` (or ``pps`` while patching) units. Each unit is
    an independent task that generates one batch and sends it; the loop never
    waits for a send to finish. Progress counts batches *issued*, not writes
    confirmed, so when ``run()`` returns some sends may still be in flight.

    With ``max_in_flight`` set, the loop takes a semaphore slot before each
    unit, which caps concurrent sends at the cost of the offered rate.
    """

    def __init__(
        self,
        settings: Settings,
        spec: WorkloadSpec,
        destination: Destination,
        id_space: IdSpace,
        *,
        tick_interval: float = 1.0,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.spec = spec
        self.destination = destination
        self.id_space = id_space
        self.tick_interval = tick_interval
        self._rng = rng or random.Random()
        self.documents = DocumentGenerator(spec, id_space, self._rng)
        self.phase = Phase.IDLE
        self.issued = {Phase.ADD: 0, Phase.MIXED: 0, Phase.PATCH: 0}
        self.stop_event = asyncio.Event()
        self._stream: PatchTemplateStream | None = None
        self._slots = asyncio.Semaphore(settings.max_in_flight) if settings.max_in_flight else None
        self._tasks: set[asyncio.Task[None]] = set()
        self._fatal: BaseException | None = None

    @property
    def documents_issued(self) -> int:
        return self.issued[Phase.ADD] + self.issued[Phase.MIXED]

    @property
    def patches_issued(self) -> int:
        return self.issued[Phase.PATCH]

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def stop(self) -> None:
        if not self.stop_event.is_set():
            logger.info("Stopping dispatch before the next tick")
        self.stop_event.set()

    async def run(self) -> None:
        mode = self.settings.mode
        logger.info(
            "Starting %s run wps=%d pps=%d batch_size=%d num_docs=%s",
            mode,
            self.settings.wps,
            self.settings.patches_per_second,
            self.spec.batch_size,
            self.settings.num_docs,
        )
        try:
            if mode is RunMode.PATCH:
                # patch targets must spread evenly over every existing document
                self.id_space.set_bound(self.settings.num_docs)
                await self._run_patches()
            elif mode is RunMode.MIXED:
                self.id_space.set_bound(self.settings.start_offset)
                await self._run_documents(Phase.MIXED)
            elif await self._run_documents(Phase.ADD) and mode is RunMode.ADD_THEN_PATCH:
                self.id_space.set_bound(self.documents_issued)
                await self._run_patches()
        finally:
            self.phase = Phase.DONE
        if self._fatal is not None:
            raise self._fatal
        logger.info(
            "Dispatch finished documents_issued=%d patches_issued=%d in_flight=%d",
            self.documents_issued,
            self.patches_issued,
            self.in_flight,
        )

    async def _run_documents(self, phase: Phase) -> bool:
        self.phase = phase
        return await self._tick_loop(self.settings.wps, self.settings.num_docs, self._send_documents)

    async def _run_patches(self) -> bool:
        self.phase = Phase.PATCH
        self._stream = PatchTemplateStream(self.settings.patch_mode, self._rng)
        logger.info(
            "Sending patches in '%s' mode against %d documents",
            self.settings.patch_mode,
            self.id_space.bound,
        )
        return await self._tick_loop(self.settings.patches_per_second, self.settings.num_patches, self._send_patches)

    async def _tick_loop(
        self,
        units_per_tick: int,
        budget: int | None,
        dispatch: Callable[[int, int], Coroutine[Any, Any, None]],
    ) -> bool:
        """Run ticks until the phase budget is issued (True) or dispatch is stopped (False)."""
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        phase = self.phase
        while budget is None or self.issued[phase] < budget:
            # a late tick fires at once and does not queue up missed ones
            deadline = max(deadline + self.tick_interval, loop.time())
            if await self._wait_for_stop(deadline - loop.time()):
                return False
            for unit in range(units_per_tick):
                size = self.spec.batch_size
                if budget is not None:
                    size = min(size, budget - self.issued[phase])
                    if size <= 0:
                        break
                if self._slots is not None:
                    await self._slots.acquire()
                    if self.stop_event.is_set():
                        self._slots.release()
                        return False
                self._spawn(dispatch(unit, size))
                self.issued[phase] += size
        # let the last tick's units generate before reporting the phase done
        await asyncio.sleep(0)
        return self._fatal is None

    async def _wait_for_stop(self, timeout: float) -> bool:
        if self.stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=max(timeout, 0))
        except TimeoutError:
            return False
        return True

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        metrics.IN_FLIGHT.set(len(self._tasks))
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        metrics.IN_FLIGHT.set(len(self._tasks))
        if self._slots is not None:
            self._slots.release()
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._fail(exc)

    def _fail(self, exc: BaseException) -> None:
        logger.error("Dispatch unit failed, stopping: %s", exc)
        if self._fatal is None:
            self._fatal = exc
        self.stop_event.set()

    async def _send_documents(self, unit: int, size: int) -> None:
        try:
            docs = self.documents.generate_batch(size)
        except GenerationError as e:
            self._fail(e)
            return
        try:
            await self.destination.send_documents(docs)
        except DestinationError as e:
            metrics.record_writes_errored(size)
            logger.warning("failed to send document batch %d of %d (wps): %s", unit, self.settings.wps, e)
            return
        metrics.record_writes_completed(size)

    async def _send_patches(self, unit: int, size: int) -> None:
        try:
            patches = generate_patches(self.id_space, self._stream, size, self._rng)
        except GenerationError as e:
            self._fail(e)
            return
        try:
            await self.destination.send_patches(patches)
        except DestinationError as e:
            metrics.record_patches_errored(size)
            logger.warning(
                "failed to send patch batch %d of %d (pps): %s", unit, self.settings.patches_per_second, e
            )
            return
        metrics.record_patches_completed(size)
