import asyncio

from soil_monitor.core.errors import StoreUnavailable
from soil_monitor.schemas.events import ReadingCreated, StatusChanged, parse_event
from soil_monitor.services.live_channel import LiveChannel
from soil_monitor.services.status_service import StatusAggregator


class Recorder:
    def __init__(self):
        self.messages = []

    async def __call__(self, message):
        self.messages.append(message)

    @property
    def events(self):
        return [m["event"] for m in self.messages]


class BrokenTransport:
    async def __call__(self, message):
        raise ConnectionResetError("socket closed")


class UnavailableReadings:
    def recent(self, limit):
        raise StoreUnavailable("down")


async def settle():
    for _ in range(20):
        await asyncio.sleep(0)


def _channel(reading_store, alert_store, **kwargs):
    return LiveChannel(reading_store, StatusAggregator(alert_store), **kwargs)


def test_snapshot_comes_first(reading_store, alert_store, make_reading):
    for i in range(12):
        reading_store.insert(make_reading(humidity=60 + i))

    async def scenario():
        channel = _channel(reading_store, alert_store)
        recorder = Recorder()
        subscriber = await channel.subscribe(recorder)
        task = asyncio.create_task(channel.forward(subscriber))
        await settle()
        task.cancel()
        return recorder

    recorder = asyncio.run(scenario())

    assert recorder.events == ["readings-snapshot", "status-changed"]
    assert len(recorder.messages[0]["data"]) == 10
    assert recorder.messages[1]["data"]["overallStatus"] == "healthy"


def test_late_subscriber_misses_earlier_events(reading_store, alert_store, make_reading):
    first = reading_store.insert(make_reading(sensor_id="sensor_1"))
    second = reading_store.insert(make_reading(sensor_id="sensor_2"))

    async def scenario():
        channel = _channel(reading_store, alert_store)
        early, late = Recorder(), Recorder()

        early_sub = await channel.subscribe(early)
        tasks = [asyncio.create_task(channel.forward(early_sub))]
        channel.publish(ReadingCreated(data=first))
        await settle()

        late_sub = await channel.subscribe(late)
        tasks.append(asyncio.create_task(channel.forward(late_sub)))
        channel.publish(ReadingCreated(data=second))
        await settle()

        for t in tasks:
            t.cancel()
        return early, late

    early, late = asyncio.run(scenario())

    def live_ids(recorder):
        return [m["data"]["id"] for m in recorder.messages if m["event"] == "reading-created"]

    assert live_ids(early) == [str(first.id), str(second.id)]
    assert live_ids(late) == [str(second.id)]
    assert late.events[:2] == ["readings-snapshot", "status-changed"]


def test_broken_subscriber_is_isolated(reading_store, alert_store, make_reading):
    reading = reading_store.insert(make_reading())

    async def scenario():
        channel = _channel(reading_store, alert_store)
        healthy = Recorder()
        good = await channel.subscribe(healthy)
        bad = await channel.subscribe(BrokenTransport())
        tasks = [
            asyncio.create_task(channel.forward(good)),
            asyncio.create_task(channel.forward(bad)),
        ]
        await settle()
        count_after_failure = channel.subscriber_count

        delivered = channel.publish(ReadingCreated(data=reading))
        await settle()
        for t in tasks:
            t.cancel()
        return healthy, count_after_failure, delivered

    healthy, count_after_failure, delivered = asyncio.run(scenario())

    assert count_after_failure == 1
    assert delivered == 1
    assert healthy.events == ["readings-snapshot", "status-changed", "reading-created"]


def test_slow_subscriber_is_dropped(reading_store, alert_store, make_reading):
    reading = reading_store.insert(make_reading())

    async def scenario():
        channel = _channel(reading_store, alert_store, queue_size=2)
        subscriber = await channel.subscribe(Recorder())
        # snapshot already fills the queue; nothing is draining it
        delivered = channel.publish(ReadingCreated(data=reading))
        return channel, subscriber, delivered

    channel, subscriber, delivered = asyncio.run(scenario())

    assert delivered == 0
    assert subscriber.closed is True
    assert channel.subscriber_count == 0


def test_subscribe_without_snapshot_when_store_is_down(alert_store):
    async def scenario():
        channel = _channel(UnavailableReadings(), alert_store)
        subscriber = await channel.subscribe(Recorder())
        return channel, subscriber

    channel, subscriber = asyncio.run(scenario())

    assert channel.subscriber_count == 1
    assert subscriber.queue.empty()


def test_serve_unsubscribes_when_transport_closes(reading_store, alert_store):
    async def scenario():
        channel = _channel(reading_store, alert_store)
        closed = asyncio.Event()
        recorder = Recorder()
        server = asyncio.create_task(channel.serve(recorder, until=closed.wait))
        await settle()
        during = channel.subscriber_count
        closed.set()
        await server
        return during, channel.subscriber_count, recorder

    during, after, recorder = asyncio.run(scenario())

    assert during == 1
    assert after == 0
    assert recorder.events == ["readings-snapshot", "status-changed"]


def test_messages_round_trip_through_event_tags(alert_store):
    status = StatusAggregator(alert_store).compute_status()
    message = StatusChanged(data=status).to_message()

    event = parse_event(message)

    assert isinstance(event, StatusChanged)
    assert event.data.overall_status == status.overall_status


def test_publish_all_keeps_cycle_order(reading_store, alert_store, make_reading):
    stored = reading_store.insert(make_reading())

    async def scenario():
        channel = _channel(reading_store, alert_store)
        recorder = Recorder()
        subscriber = await channel.subscribe(recorder)
        task = asyncio.create_task(channel.forward(subscriber))
        status = await channel.snapshot()
        channel.publish_all([ReadingCreated(data=stored), status[1]])
        await settle()
        task.cancel()
        return recorder

    recorder = asyncio.run(scenario())

    assert recorder.events == ["readings-snapshot", "status-changed", "reading-created", "status-changed"]
