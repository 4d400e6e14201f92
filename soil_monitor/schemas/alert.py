from enum import Enum
from uuid import UUID
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class AlertType(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


class AlertCandidate(BaseModel):
    """Evaluator output; never stored as-is."""
    type: AlertType
    title: str
    message: str
    sensor_id: str
    value: Union[int, float]
    threshold: Union[int, float, str]
    location: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class AlertOut(AlertCandidate):
    id: UUID
    is_read: bool = False
    created_at: datetime
    acknowledged_at: Optional[datetime] = None
