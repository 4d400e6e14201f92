from typing import List, Optional

from pydantic import BaseModel

from soil_monitor.schemas.alert import AlertOut
from soil_monitor.schemas.reading import ReadingOut
from soil_monitor.schemas.status import SystemStatus


class CycleOut(BaseModel):
    reading: ReadingOut
    alerts: List[AlertOut]
    failed_alerts: int = 0
    status: Optional[SystemStatus] = None
