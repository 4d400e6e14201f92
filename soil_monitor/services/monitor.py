import asyncio
import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from soil_monitor.db.alert_store import AlertStore
from soil_monitor.db.reading_store import ReadingStore
from soil_monitor.services.alert_persister import AlertPersister
from soil_monitor.services.ingestion import IngestionLoop, IngestionPipeline, ReadingSource
from soil_monitor.services.live_channel import LiveChannel
from soil_monitor.services.mqtt_ingestor import MqttReadingIngestor
from soil_monitor.services.simulation import MockReadingSource
from soil_monitor.services.status_service import StatusAggregator

logger = logging.getLogger(__name__)


class Monitor:
    """
    Wires the stores, evaluator pipeline and live channel around one
    session factory. Built once per application.
    """

    def __init__(self, session_factory: sessionmaker, snapshot_size: int = 10, queue_size: int = 100):
        self.reading_store = ReadingStore(session_factory)
        self.alert_store = AlertStore(session_factory)
        self.persister = AlertPersister(self.alert_store)
        self.status_aggregator = StatusAggregator(self.alert_store)
        self.channel = LiveChannel(
            self.reading_store,
            self.status_aggregator,
            snapshot_size=snapshot_size,
            queue_size=queue_size,
        )
        self.pipeline = IngestionPipeline(
            self.reading_store, self.persister, self.status_aggregator, self.channel
        )
        self.loop: Optional[IngestionLoop] = None
        self.mqtt: Optional[MqttReadingIngestor] = None

    @classmethod
    def from_settings(cls, session_factory: sessionmaker, settings) -> "Monitor":
        return cls(
            session_factory,
            snapshot_size=settings.LIVE_SNAPSHOT_SIZE,
            queue_size=settings.LIVE_QUEUE_SIZE,
        )

    def start_loop(self, source: Optional[ReadingSource] = None, interval: float = 5.0) -> IngestionLoop:
        self.loop = IngestionLoop(self.pipeline, source or MockReadingSource(), interval=interval)
        self.loop.start()
        return self.loop

    def start_mqtt(self, settings) -> MqttReadingIngestor:
        self.mqtt = MqttReadingIngestor(
            self.pipeline,
            asyncio.get_running_loop(),
            host=settings.MQTT_BROKER_HOST,
            port=settings.MQTT_BROKER_PORT,
            topic_root=settings.MQTT_TOPIC_ROOT,
            username=settings.MQTT_USERNAME,
            password=settings.MQTT_PASSWORD,
        )
        self.mqtt.start()
        return self.mqtt

    async def start(self, settings) -> None:
        if not settings.INGESTION_ENABLED:
            logger.info("Ingestion disabled; readings only arrive over HTTP")
            return
        source = settings.READING_SOURCE.lower()
        if source == "mqtt":
            self.start_mqtt(settings)
        elif source == "mock":
            self.start_loop(interval=settings.INGESTION_INTERVAL_SECONDS)
        else:
            raise ValueError(f"Unknown READING_SOURCE: {settings.READING_SOURCE}")

    async def stop(self) -> None:
        if self.loop is not None:
            await self.loop.stop()
        if self.mqtt is not None:
            self.mqtt.stop()
