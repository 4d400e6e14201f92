from datetime import datetime
from typing import Callable, List
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import sessionmaker

from soil_monitor.core.timeutils import utcnow
from soil_monitor.db.reading_store import store_session
from soil_monitor.models.alert import Alert
from soil_monitor.schemas.alert import AlertCandidate, AlertOut


class AlertStore:
    """Alert records and their read-state transitions."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def insert(self, candidate: AlertCandidate, created_at: datetime) -> AlertOut:
        with store_session(self.session_factory, "insert alert") as db:
            row = Alert(
                type=candidate.type.value,
                title=candidate.title,
                message=candidate.message,
                sensor_id=candidate.sensor_id,
                value=candidate.value,
                threshold=candidate.threshold,
                location=candidate.location,
                is_read=False,
                created_at=created_at,
                acknowledged_at=None,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return AlertOut.model_validate(row)

    def unread_count(self) -> int:
        with store_session(self.session_factory, "count unread alerts") as db:
            return db.query(Alert).filter(Alert.is_read == False).count()  # noqa: E712

    def recent(self, limit: int = 50, include_read: bool = False) -> List[AlertOut]:
        with store_session(self.session_factory, "query recent alerts") as db:
            q = db.query(Alert)
            if not include_read:
                q = q.filter(Alert.is_read == False)  # noqa: E712
            rows = q.order_by(Alert.created_at.desc()).limit(limit).all()
            return [AlertOut.model_validate(r) for r in rows]

    def mark_read(self, alert_id: UUID) -> bool:
        with store_session(self.session_factory, "mark alert read") as db:
            result = db.execute(
                update(Alert)
                .where(Alert.id == alert_id)
                .values(is_read=True, acknowledged_at=self.clock())
            )
            db.commit()
            return result.rowcount > 0

    def mark_all_read(self) -> int:
        with store_session(self.session_factory, "mark all alerts read") as db:
            result = db.execute(
                update(Alert)
                .where(Alert.is_read == False)  # noqa: E712
                .values(is_read=True, acknowledged_at=self.clock())
            )
            db.commit()
            return result.rowcount
