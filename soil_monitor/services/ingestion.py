import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from fastapi.concurrency import run_in_threadpool

from soil_monitor.core.errors import StoreUnavailable
from soil_monitor.db.reading_store import ReadingStore
from soil_monitor.schemas.alert import AlertCandidate, AlertOut
from soil_monitor.schemas.events import AlertsCreated, ReadingCreated, StatusChanged
from soil_monitor.schemas.reading import ReadingIn, ReadingOut
from soil_monitor.schemas.status import SystemStatus
from soil_monitor.services.alert_persister import AlertPersister
from soil_monitor.services.evaluator import evaluate
from soil_monitor.services.live_channel import LiveChannel
from soil_monitor.services.status_service import StatusAggregator

logger = logging.getLogger(__name__)


class ReadingSource(Protocol):
    def next_reading(self) -> ReadingIn: ...


@dataclass
class CycleResult:
    reading: ReadingOut
    alerts: List[AlertOut] = field(default_factory=list)
    failures: List[Tuple[AlertCandidate, StoreUnavailable]] = field(default_factory=list)
    status: Optional[SystemStatus] = None


class IngestionPipeline:
    """
    One ingestion cycle: store the reading, evaluate it, persist the
    alerts, refresh the status and broadcast the results.
    """

    def __init__(
        self,
        reading_store: ReadingStore,
        persister: AlertPersister,
        status_aggregator: StatusAggregator,
        channel: LiveChannel,
    ):
        self.reading_store = reading_store
        self.persister = persister
        self.status_aggregator = status_aggregator
        self.channel = channel

    async def process_reading(self, reading: ReadingIn) -> CycleResult:
        # StoreUnavailable here abandons the cycle: nothing is evaluated or sent
        stored = await run_in_threadpool(self.reading_store.insert, reading)
        result = CycleResult(reading=stored)

        candidates = evaluate(stored)
        if candidates:
            outcome = await run_in_threadpool(self.persister.persist_all, candidates)
            result.alerts = outcome.alerts
            result.failures = outcome.failures
            if outcome.failures:
                logger.error(
                    "%d of %d alert(s) for %s were not persisted",
                    len(outcome.failures), len(candidates), stored.sensor_id,
                )
            try:
                result.status = await run_in_threadpool(self.status_aggregator.compute_status)
            except StoreUnavailable as exc:
                logger.error("Status not refreshed after alerts for %s: %s", stored.sensor_id, exc)

        events = [ReadingCreated(data=stored)]
        # status only travels with the alerts that changed it
        if result.alerts:
            events.append(AlertsCreated(data=result.alerts))
            if result.status is not None:
                events.append(StatusChanged(data=result.status))
        self.channel.publish_all(events)

        logger.debug("Reading from %s stored, %d alert(s)", stored.sensor_id, len(result.alerts))
        return result

    async def current_status(self) -> SystemStatus:
        return await run_in_threadpool(self.status_aggregator.compute_status)


def next_deadline(previous: float, now: float, interval: float) -> Tuple[float, int]:
    """
    Next start time on the fixed grid ``previous + k * interval`` that is
    not in the past, and how many slots were skipped to reach it.
    """
    deadline = previous + interval
    skipped = 0
    if deadline < now:
        skipped = int((now - deadline) // interval) + 1
        deadline += skipped * interval
    return deadline, skipped


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class IngestionLoop:
    """
    Drives the pipeline on a fixed period. One instance per process;
    subscribers only ever see its output through the live channel.
    """

    def __init__(self, pipeline: IngestionPipeline, source: ReadingSource, interval: float = 5.0):
        self.pipeline = pipeline
        self.source = source
        self.interval = interval
        self.state = LoopState.IDLE
        self.cycles = 0
        self._stopping: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    async def run_cycle(self) -> Optional[CycleResult]:
        reading = self.source.next_reading()
        try:
            return await self.pipeline.process_reading(reading)
        except StoreUnavailable as exc:
            logger.error("Ingestion cycle abandoned for %s: %s", reading.sensor_id, exc)
            return None
        finally:
            self.cycles += 1

    async def _run(self) -> None:
        clock = asyncio.get_running_loop().time
        deadline = clock()
        while not self._stopping.is_set():
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Unexpected error in ingestion cycle")
            now = clock()
            deadline, skipped = next_deadline(deadline, now, self.interval)
            if skipped:
                logger.warning("Ingestion cycle overran its period, skipping %d slot(s)", skipped)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=deadline - now)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        if self.state == LoopState.RUNNING:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        self.state = LoopState.RUNNING
        logger.info("Ingestion loop started (every %.1fs)", self.interval)

    async def stop(self) -> None:
        """Stops scheduling new cycles; a cycle already running is allowed to finish."""
        if self.state == LoopState.IDLE:
            return
        self._stopping.set()
        await self._task
        self._task = None
        self.state = LoopState.IDLE
        logger.info("Ingestion loop stopped after %d cycle(s)", self.cycles)
