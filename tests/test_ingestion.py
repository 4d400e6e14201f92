import asyncio
import random

import pytest

from soil_monitor.core.errors import StoreUnavailable
from soil_monitor.schemas.status import OverallStatus
from soil_monitor.services.alert_persister import AlertPersister
from soil_monitor.services.ingestion import IngestionLoop, IngestionPipeline, LoopState, next_deadline
from soil_monitor.services.simulation import MockReadingSource
from soil_monitor.services.status_service import StatusAggregator


class CapturingChannel:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)
        return 1

    def publish_all(self, events):
        for event in events:
            self.publish(event)

    @property
    def tags(self):
        return [e.event for e in self.events]


class FailingReadingStore:
    def __init__(self, store, failures=1):
        self.store = store
        self.failures = failures

    def insert(self, reading):
        if self.failures > 0:
            self.failures -= 1
            raise StoreUnavailable("reading store offline")
        return self.store.insert(reading)


class FailSecondAlert:
    def __init__(self, store):
        self.store = store
        self.calls = 0

    def insert(self, candidate, created_at):
        self.calls += 1
        if self.calls == 2:
            raise StoreUnavailable("alert write failed")
        return self.store.insert(candidate, created_at)


class RejectAllAlerts:
    def insert(self, candidate, created_at):
        raise StoreUnavailable("alert table locked")


class FixedSource:
    def __init__(self, reading):
        self.reading = reading

    def next_reading(self):
        return self.reading


def _pipeline(reading_store, alert_store, clock, channel, persister_store=None):
    return IngestionPipeline(
        reading_store,
        AlertPersister(persister_store or alert_store, clock=clock),
        StatusAggregator(alert_store),
        channel,
    )


def test_quiet_reading_only_broadcasts_reading(reading_store, alert_store, clock, make_reading):
    channel = CapturingChannel()
    pipeline = _pipeline(reading_store, alert_store, clock, channel)

    result = asyncio.run(pipeline.process_reading(make_reading()))

    assert channel.tags == ["reading-created"]
    assert result.alerts == []
    assert result.status is None
    assert len(reading_store.recent(10)) == 1


def test_alerting_reading_broadcasts_all_three(reading_store, alert_store, clock, make_reading):
    channel = CapturingChannel()
    pipeline = _pipeline(reading_store, alert_store, clock, channel)

    result = asyncio.run(pipeline.process_reading(make_reading(soil_moisture=12, battery_level=9)))

    assert channel.tags == ["reading-created", "alerts-created", "status-changed"]
    alerts_event, status_event = channel.events[1], channel.events[2]
    assert [a.title for a in alerts_event.data] == ["Critical Soil Moisture", "Low Battery"]
    # status is computed after the alerts are stored
    assert status_event.data.unread_count == 2
    assert status_event.data.overall_status == OverallStatus.CRITICAL
    assert result.status == status_event.data


def test_reading_store_failure_abandons_cycle(reading_store, alert_store, clock, make_reading):
    channel = CapturingChannel()
    pipeline = _pipeline(FailingReadingStore(reading_store), alert_store, clock, channel)

    with pytest.raises(StoreUnavailable):
        asyncio.run(pipeline.process_reading(make_reading(soil_moisture=5)))

    assert channel.events == []
    assert alert_store.unread_count() == 0


def test_partial_alert_batch_is_reported(reading_store, alert_store, clock, make_reading):
    channel = CapturingChannel()
    pipeline = _pipeline(
        reading_store, alert_store, clock, channel, persister_store=FailSecondAlert(alert_store)
    )

    result = asyncio.run(pipeline.process_reading(make_reading(ph_level=8.0, battery_level=10)))

    assert [a.title for a in result.alerts] == ["pH Level Alert"]
    assert len(result.failures) == 1
    assert channel.tags == ["reading-created", "alerts-created", "status-changed"]
    assert len(channel.events[1].data) == 1
    assert alert_store.unread_count() == 1


def test_loop_survives_store_failure_and_stops_cleanly(reading_store, alert_store, clock, make_reading):
    channel = CapturingChannel()
    pipeline = _pipeline(FailingReadingStore(reading_store, failures=1), alert_store, clock, channel)
    loop = IngestionLoop(pipeline, FixedSource(make_reading()), interval=0.01)

    async def scenario():
        assert loop.state == LoopState.IDLE
        loop.start()
        assert loop.state == LoopState.RUNNING
        while loop.cycles < 3:
            await asyncio.sleep(0.01)
        await loop.stop()

    asyncio.run(scenario())

    assert loop.state == LoopState.IDLE
    stored = len(reading_store.recent(100))
    assert stored == loop.cycles - 1
    assert channel.tags.count("reading-created") == stored


def test_run_cycle_returns_none_when_abandoned(reading_store, alert_store, clock, make_reading):
    pipeline = _pipeline(FailingReadingStore(reading_store), alert_store, clock, CapturingChannel())
    loop = IngestionLoop(pipeline, FixedSource(make_reading()))

    assert asyncio.run(loop.run_cycle()) is None
    assert asyncio.run(loop.run_cycle()) is not None
    assert loop.cycles == 2


def test_current_status(reading_store, alert_store, clock, make_reading):
    pipeline = _pipeline(reading_store, alert_store, clock, CapturingChannel())
    asyncio.run(pipeline.process_reading(make_reading(temperature=39.5)))

    status = asyncio.run(pipeline.current_status())

    assert status.overall_status == OverallStatus.WARNING
    assert status.unread_count == 1


def test_mock_source_stays_in_reference_ranges():
    source = MockReadingSource(rng=random.Random(42))

    for _ in range(200):
        r = source.next_reading()
        assert r.sensor_id in {f"sensor_{i}" for i in range(1, 6)}
        assert r.location.name.startswith("Batac Farm")
        assert 30 <= r.soil_moisture <= 79
        assert 25.0 <= r.temperature <= 35.0
        assert 5.5 <= r.ph_level <= 8.0
        assert 20 <= r.battery_level <= 99


def test_no_alert_persisted_sends_no_status(reading_store, alert_store, clock, make_reading):
    channel = CapturingChannel()
    pipeline = _pipeline(
        reading_store, alert_store, clock, channel, persister_store=RejectAllAlerts()
    )

    result = asyncio.run(pipeline.process_reading(make_reading(soil_moisture=5, battery_level=4)))

    assert result.alerts == []
    assert len(result.failures) == 2
    # status-changed never goes out without alerts-created
    assert channel.tags == ["reading-created"]
    assert len(reading_store.recent(10)) == 1
    assert alert_store.unread_count() == 0


def test_next_deadline_stays_on_grid():
    assert next_deadline(10.0, 10.3, 5.0) == (15.0, 0)
    assert next_deadline(10.0, 15.0, 5.0) == (15.0, 0)
    # a cycle that ran 12s skips the two slots it overlapped
    assert next_deadline(10.0, 22.0, 5.0) == (25.0, 2)


class SlowPipeline:
    def __init__(self, duration):
        self.duration = duration
        self.started = []

    async def process_reading(self, reading):
        self.started.append(asyncio.get_running_loop().time())
        await asyncio.sleep(self.duration)
        return None


def test_loop_period_does_not_drift_with_cycle_duration(make_reading):
    pipeline = SlowPipeline(duration=0.05)
    loop = IngestionLoop(pipeline, FixedSource(make_reading()), interval=0.1)

    async def scenario():
        loop.start()
        while loop.cycles < 5:
            await asyncio.sleep(0.01)
        await loop.stop()

    asyncio.run(scenario())

    starts = pipeline.started[:5]
    average_gap = (starts[-1] - starts[0]) / (len(starts) - 1)
    # waiting a full interval after each cycle would give ~0.15
    assert 0.09 <= average_gap < 0.13
