from typing import List

from fastapi import APIRouter, Depends, Query

from soil_monitor.core.deps import get_monitor
from soil_monitor.schemas.ingestion import CycleOut
from soil_monitor.schemas.reading import ReadingIn, ReadingOut
from soil_monitor.services.monitor import Monitor

router = APIRouter(prefix="/api/sensor-data", tags=["sensor-data"])


@router.get("", response_model=List[ReadingOut])
def list_readings(
    limit: int = Query(100, ge=1, le=1000),
    monitor: Monitor = Depends(get_monitor),
):
    return monitor.reading_store.recent(limit)


@router.get("/latest", response_model=List[ReadingOut])
def latest_readings(monitor: Monitor = Depends(get_monitor)):
    return monitor.reading_store.latest_per_sensor()


@router.get("/sensor/{sensor_id}", response_model=List[ReadingOut])
def readings_by_sensor(
    sensor_id: str,
    limit: int = Query(50, ge=1, le=1000),
    monitor: Monitor = Depends(get_monitor),
):
    return monitor.reading_store.by_sensor(sensor_id, limit)


@router.post("", response_model=CycleOut, status_code=201)
async def ingest_reading(reading: ReadingIn, monitor: Monitor = Depends(get_monitor)):
    """Runs one ingestion cycle for a reading pushed by a device."""
    result = await monitor.pipeline.process_reading(reading)
    return CycleOut(
        reading=result.reading,
        alerts=result.alerts,
        failed_alerts=len(result.failures),
        status=result.status,
    )
