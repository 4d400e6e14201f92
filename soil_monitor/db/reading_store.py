import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from soil_monitor.core.errors import StoreUnavailable
from soil_monitor.models.reading import SensorReading
from soil_monitor.schemas.reading import ReadingIn, ReadingOut

logger = logging.getLogger(__name__)

EXPORT_LIMIT = 1000


@contextmanager
def store_session(session_factory: sessionmaker, action: str) -> Iterator[Session]:
    """
    Opens a short-lived session and converts any database failure into
    StoreUnavailable after rolling back.
    """
    db = session_factory()
    try:
        yield db
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreUnavailable(f"{action} failed: {exc}") from exc
    finally:
        db.close()


class ReadingStore:
    """Append-only collection of sensor readings."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def insert(self, reading: ReadingIn) -> ReadingOut:
        with store_session(self.session_factory, "insert reading") as db:
            row = SensorReading(
                sensor_id=reading.sensor_id,
                location=reading.location.model_dump(),
                soil_moisture=reading.soil_moisture,
                temperature=reading.temperature,
                humidity=reading.humidity,
                ph_level=reading.ph_level,
                nitrogen=reading.nitrogen,
                phosphorus=reading.phosphorus,
                potassium=reading.potassium,
                battery_level=reading.battery_level,
                timestamp=reading.timestamp,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return ReadingOut.model_validate(row)

    def recent(self, limit: int = 100) -> List[ReadingOut]:
        with store_session(self.session_factory, "query recent readings") as db:
            rows = (
                db.query(SensorReading)
                .order_by(SensorReading.timestamp.desc())
                .limit(limit)
                .all()
            )
            return [ReadingOut.model_validate(r) for r in rows]

    def by_sensor(self, sensor_id: str, limit: int = 50) -> List[ReadingOut]:
        with store_session(self.session_factory, "query readings by sensor") as db:
            rows = (
                db.query(SensorReading)
                .filter(SensorReading.sensor_id == sensor_id)
                .order_by(SensorReading.timestamp.desc())
                .limit(limit)
                .all()
            )
            return [ReadingOut.model_validate(r) for r in rows]

    def latest_per_sensor(self) -> List[ReadingOut]:
        """Newest reading of every sensor id."""
        with store_session(self.session_factory, "query latest readings") as db:
            newest = (
                db.query(
                    SensorReading.sensor_id,
                    func.max(SensorReading.timestamp).label("newest"),
                )
                .group_by(SensorReading.sensor_id)
                .subquery()
            )
            rows = (
                db.query(SensorReading)
                .join(
                    newest,
                    (SensorReading.sensor_id == newest.c.sensor_id)
                    & (SensorReading.timestamp == newest.c.newest),
                )
                .order_by(SensorReading.sensor_id.asc())
                .all()
            )

            # same sensor and timestamp twice: keep one
            seen = set()
            result = []
            for r in rows:
                if r.sensor_id in seen:
                    continue
                seen.add(r.sensor_id)
                result.append(ReadingOut.model_validate(r))
            return result

    def by_time_range(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        sensor_id: Optional[str] = None,
        limit: int = EXPORT_LIMIT,
    ) -> List[ReadingOut]:
        with store_session(self.session_factory, "query readings by time range") as db:
            q = db.query(SensorReading)

            if start:
                q = q.filter(SensorReading.timestamp >= start)
            if end:
                q = q.filter(SensorReading.timestamp <= end)
            if sensor_id:
                q = q.filter(SensorReading.sensor_id == sensor_id)

            q = q.order_by(SensorReading.timestamp.desc()).limit(min(limit, EXPORT_LIMIT))
            return [ReadingOut.model_validate(r) for r in q.all()]
