from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from soil_monitor.core.deps import get_current_user, get_monitor
from soil_monitor.schemas.alert import AlertOut
from soil_monitor.schemas.status import SystemStatus
from soil_monitor.services.monitor import Monitor

router = APIRouter(
    prefix="/api/alerts",
    tags=["alerts"],
    dependencies=[Depends(get_current_user)],
)


@router.get("", response_model=List[AlertOut])
def list_alerts(
    limit: int = Query(50, ge=1, le=500),
    include_read: bool = Query(False, alias="includeRead"),
    monitor: Monitor = Depends(get_monitor),
):
    return monitor.alert_store.recent(limit, include_read=include_read)


@router.get("/system-status", response_model=SystemStatus)
async def system_status(monitor: Monitor = Depends(get_monitor)):
    return await monitor.pipeline.current_status()


@router.patch("/read-all")
def mark_all_read(monitor: Monitor = Depends(get_monitor)):
    updated = monitor.alert_store.mark_all_read()
    return {"message": "All alerts marked as read", "updated": updated}


@router.patch("/{alert_id}/read")
def mark_read(alert_id: UUID, monitor: Monitor = Depends(get_monitor)):
    if not monitor.alert_store.mark_read(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"message": "Alert marked as read"}
