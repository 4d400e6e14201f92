import asyncio
import logging
import threading
from typing import Optional

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from soil_monitor.core.errors import ReadingValidationError, StoreUnavailable
from soil_monitor.schemas.reading import ReadingIn

logger = logging.getLogger(__name__)

TELEMETRY_SUFFIX = "telemetry"


# ========= Payload parsing =========

def parse_telemetry(payload_raw: str) -> ReadingIn:
    """
    Validates one telemetry payload. Expected topic/payload:
      soil-monitor/sensor_3/telemetry
      {"sensor_id": "sensor_3", "location": {...}, "soil_moisture": 41, ...}
    """
    try:
        return ReadingIn.model_validate_json(payload_raw)
    except ValidationError as exc:
        raise ReadingValidationError(exc.errors(include_url=False)) from exc


def sensor_from_topic(topic: str) -> Optional[str]:
    # Ex: soil-monitor/sensor_3/telemetry -> sensor_3
    parts = topic.split("/")
    if len(parts) < 3 or parts[-1] != TELEMETRY_SUFFIX:
        return None
    return parts[-2]


# ========= Ingestor =========

class MqttReadingIngestor:
    """
    Receives readings from field devices over MQTT and hands each one to
    the ingestion pipeline on the application's event loop.
    """

    def __init__(self, pipeline, loop: asyncio.AbstractEventLoop, host: str, port: int = 1883,
                 topic_root: str = "soil-monitor", username: Optional[str] = None,
                 password: Optional[str] = None):
        self.pipeline = pipeline
        self.loop = loop
        self.host = host
        self.port = port
        self.topic_root = topic_root
        self.username = username
        self.password = password
        self._client: Optional[mqtt.Client] = None

    @property
    def subscription(self) -> str:
        return f"{self.topic_root}/+/{TELEMETRY_SUFFIX}"

    # ---- MQTT callbacks ----

    def _on_connect(self, client: mqtt.Client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error("[MQTT-INGESTOR] Connection refused: %s", reason_code)
            return
        # subscribe again on every (re)connect
        client.subscribe(self.subscription)
        logger.info("[MQTT-INGESTOR] Connected, subscribed to %s", self.subscription)

    def _on_message(self, client: mqtt.Client, userdata, msg: mqtt.MQTTMessage):
        self.handle_message(msg.topic, msg.payload.decode(errors="ignore").strip())

    def handle_message(self, topic: str, payload_raw: str):
        topic_sensor = sensor_from_topic(topic)
        if topic_sensor is None:
            return None

        try:
            reading = parse_telemetry(payload_raw)
        except ReadingValidationError as exc:
            logger.warning("[MQTT-INGESTOR] Dropping invalid payload on %s: %s", topic, exc.errors)
            return None

        if reading.sensor_id != topic_sensor:
            logger.warning(
                "[MQTT-INGESTOR] Topic %s carries sensor_id %s", topic, reading.sensor_id
            )

        future = asyncio.run_coroutine_threadsafe(self.pipeline.process_reading(reading), self.loop)
        future.add_done_callback(self._log_result)
        return future

    @staticmethod
    def _log_result(future):
        if future.cancelled():
            return
        exc = future.exception()
        if isinstance(exc, StoreUnavailable):
            logger.error("[MQTT-INGESTOR] Reading not stored: %s", exc)
        elif exc is not None:
            logger.error("[MQTT-INGESTOR] Error processing reading: %r", exc)

    # ---- lifecycle ----

    def start(self):
        """
        Creates the MQTT client, connects to the broker and runs its network
        loop in a daemon thread.
        """
        if self._client is not None:
            return

        client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id="SOIL-MONITOR-INGESTOR",
            clean_session=True,
        )

        if self.username:
            client.username_pw_set(self.username, self.password or "")

        client.on_connect = self._on_connect
        client.on_message = self._on_message

        logger.info("[MQTT-INGESTOR] Connecting to %s:%s ...", self.host, self.port)
        client.connect(self.host, self.port, keepalive=60)

        thread = threading.Thread(target=client.loop_forever, daemon=True)
        thread.start()

        self._client = client

    def stop(self):
        if self._client is None:
            return
        self._client.disconnect()
        self._client = None
        logger.info("[MQTT-INGESTOR] Disconnected.")
