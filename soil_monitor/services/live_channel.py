"""
Live fan-out of readings, alerts and status to connected subscribers.

A single producer calls ``publish``; every subscriber owns a bounded queue
and a forwarding task that drains it into its transport. Nothing is
replayed: a subscriber only sees what was published while it was in the
set, plus the snapshot it received when it joined.
"""
import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set

from fastapi.concurrency import run_in_threadpool

from soil_monitor.core.errors import StoreUnavailable, SubscriberSendFailure
from soil_monitor.db.reading_store import ReadingStore
from soil_monitor.schemas.events import ReadingsSnapshot, StatusChanged
from soil_monitor.services.status_service import StatusAggregator

logger = logging.getLogger(__name__)

Send = Callable[[Dict[str, Any]], Awaitable[None]]

_ids = itertools.count(1)


class Subscriber:
    def __init__(self, send: Send, queue_size: int = 100):
        self.id = next(_ids)
        self.send = send
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def offer(self, event) -> bool:
        if self.closed:
            return False
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def deliver(self, event) -> None:
        try:
            await self.send(event.to_message())
        except Exception as exc:
            raise SubscriberSendFailure(f"subscriber {self.id}: {exc}") from exc

    def __repr__(self):
        return f"<Subscriber {self.id} pending={self.queue.qsize()}>"


class LiveChannel:
    def __init__(
        self,
        reading_store: ReadingStore,
        status_aggregator: StatusAggregator,
        snapshot_size: int = 10,
        queue_size: int = 100,
    ):
        self.reading_store = reading_store
        self.status_aggregator = status_aggregator
        self.snapshot_size = snapshot_size
        self.queue_size = queue_size
        self._subscribers: Set[Subscriber] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def snapshot(self) -> List:
        """Recent readings followed by the current status."""
        readings = await run_in_threadpool(self.reading_store.recent, self.snapshot_size)
        status = await run_in_threadpool(self.status_aggregator.compute_status)
        return [ReadingsSnapshot(data=readings), StatusChanged(data=status)]

    async def subscribe(self, send: Send) -> Subscriber:
        subscriber = Subscriber(send, queue_size=self.queue_size)
        try:
            initial = await self.snapshot()
        except StoreUnavailable as exc:
            logger.error("Snapshot unavailable for subscriber %s: %s", subscriber.id, exc)
            initial = []

        # snapshot is queued before the subscriber can see live events
        for event in initial:
            subscriber.offer(event)
        self._subscribers.add(subscriber)
        logger.info("Subscriber %s connected (%d total)", subscriber.id, self.subscriber_count)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        subscriber.closed = True
        if subscriber in self._subscribers:
            self._subscribers.discard(subscriber)
            logger.info("Subscriber %s disconnected (%d total)", subscriber.id, self.subscriber_count)

    def publish(self, event) -> int:
        """Queues the event for every current subscriber; returns how many accepted it."""
        delivered = 0
        for subscriber in list(self._subscribers):
            if subscriber.offer(event):
                delivered += 1
            else:
                logger.warning("Subscriber %s is not keeping up, dropping it", subscriber.id)
                self.unsubscribe(subscriber)
        return delivered

    def publish_all(self, events: Iterable) -> None:
        for event in events:
            self.publish(event)

    async def forward(self, subscriber: Subscriber) -> None:
        """Drains one subscriber's queue into its transport until it fails or is closed."""
        while not subscriber.closed:
            event = await subscriber.queue.get()
            try:
                await subscriber.deliver(event)
            except SubscriberSendFailure as exc:
                logger.warning("Dropping subscriber after failed send: %s", exc)
                self.unsubscribe(subscriber)
                return

    async def serve(self, send: Send, until: Optional[Callable[[], Awaitable[Any]]] = None) -> None:
        """
        Subscribes ``send`` and forwards events to it. Returns when ``until``
        completes (typically the transport's disconnect) or the subscriber
        is dropped.
        """
        subscriber = await self.subscribe(send)
        pump = asyncio.create_task(self.forward(subscriber))
        try:
            if until is None:
                await pump
            else:
                waiter = asyncio.create_task(until())
                done, _ = await asyncio.wait({pump, waiter}, return_when=asyncio.FIRST_COMPLETED)
                if waiter not in done:
                    waiter.cancel()
                elif waiter.exception() is not None:
                    logger.debug("Subscriber %s transport closed: %r", subscriber.id, waiter.exception())
        finally:
            self.unsubscribe(subscriber)
            if not pump.done():
                pump.cancel()
