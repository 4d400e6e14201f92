from enum import Enum
from typing import List

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from soil_monitor.schemas.alert import AlertOut


class OverallStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class SystemStatus(BaseModel):
    overall_status: OverallStatus
    unread_count: int
    recent_alerts: List[AlertOut]

    class Config:
        alias_generator = to_camel
        populate_by_name = True
