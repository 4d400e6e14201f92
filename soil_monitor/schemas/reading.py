from uuid import UUID
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from soil_monitor.core.timeutils import utcnow


class Location(BaseModel):
    name: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ReadingIn(BaseModel):
    """One measurement set as transmitted by a sensor.

    Out-of-range values are rejected here so they never reach the
    threshold evaluator.
    """
    sensor_id: str = Field(..., min_length=1)
    location: Location
    soil_moisture: int = Field(..., ge=0, le=100)        # %
    temperature: float = Field(..., ge=-50, le=80)       # °C
    humidity: int = Field(..., ge=0, le=100)             # %
    ph_level: float = Field(..., ge=0, le=14)
    nitrogen: int = Field(..., ge=0)                     # ppm
    phosphorus: int = Field(..., ge=0)                   # ppm
    potassium: int = Field(..., ge=0)                    # ppm
    battery_level: int = Field(..., ge=0, le=100)        # %
    timestamp: datetime = Field(default_factory=utcnow)

    @field_validator("timestamp")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        # stored as naive UTC
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class ReadingOut(ReadingIn):
    id: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
