import uuid
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Uuid
from soil_monitor.core.timeutils import utcnow
from soil_monitor.db.base import Base

class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    type = Column(String, nullable=False)          # "critical" | "warning"
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    sensor_id = Column(String, nullable=False)
    value = Column(JSON, nullable=False)           # reading value as reported, int or float
    threshold = Column(JSON, nullable=False)       # number or range string, ex: 25 / "5.5-7.5"
    location = Column(String, nullable=False)

    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    acknowledged_at = Column(DateTime, nullable=True)
