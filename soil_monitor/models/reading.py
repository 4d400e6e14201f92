import uuid
from sqlalchemy import Column, Float, String, Integer, DateTime, JSON, Uuid
from soil_monitor.core.timeutils import utcnow
from soil_monitor.db.base import Base

class SensorReading(Base):
    __tablename__ = "sensor_readings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    sensor_id = Column(String, nullable=False, index=True)   # free-form, no sensor registry
    location = Column(JSON, nullable=False)                  # ex: {"name": "Batac Farm 1", "lat": 18.0554, "lng": 120.5649}

    soil_moisture = Column(Integer, nullable=False)
    temperature = Column(Float, nullable=False)
    humidity = Column(Integer, nullable=False)
    ph_level = Column(Float, nullable=False)
    nitrogen = Column(Integer, nullable=False)
    phosphorus = Column(Integer, nullable=False)
    potassium = Column(Integer, nullable=False)
    battery_level = Column(Integer, nullable=False)

    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    created_at = Column(DateTime, default=utcnow)
