# soil_monitor/api/export.py

from datetime import date, datetime, time
from io import BytesIO, StringIO
from typing import Any, Dict, List, Optional
import csv

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

from soil_monitor.core.deps import get_current_user, get_monitor
from soil_monitor.core.timeutils import utcnow
from soil_monitor.schemas.reading import ReadingOut
from soil_monitor.services.monitor import Monitor

router = APIRouter(
    prefix="/api/export",
    tags=["export"],
    dependencies=[Depends(get_current_user)],
)

EXPORT_COLUMNS = [
    "Sensor_ID", "Location", "Latitude", "Longitude", "Soil_Moisture",
    "Temperature", "Humidity", "pH_Level", "Nitrogen", "Phosphorus",
    "Potassium", "Battery_Level", "Timestamp",
]


def export_row(reading: ReadingOut) -> Dict[str, Any]:
    return {
        "Sensor_ID": reading.sensor_id,
        "Location": reading.location.name,
        "Latitude": reading.location.lat,
        "Longitude": reading.location.lng,
        "Soil_Moisture": reading.soil_moisture,
        "Temperature": reading.temperature,
        "Humidity": reading.humidity,
        "pH_Level": reading.ph_level,
        "Nitrogen": reading.nitrogen,
        "Phosphorus": reading.phosphorus,
        "Potassium": reading.potassium,
        "Battery_Level": reading.battery_level,
        "Timestamp": reading.timestamp.isoformat(),
    }


def _query_rows(
    monitor: Monitor,
    start_date: Optional[date],
    end_date: Optional[date],
    sensor_id: Optional[str],
) -> List[Dict[str, Any]]:
    """Shared lookup for every export format."""

    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="Invalid date range.")

    start = datetime.combine(start_date, time.min) if start_date else None
    # end date is inclusive up to 23:59:59.999999
    end = datetime.combine(end_date, time.max) if end_date else None
    if sensor_id == "all":
        sensor_id = None

    readings = monitor.reading_store.by_time_range(start, end, sensor_id)
    if not readings:
        raise HTTPException(
            status_code=404,
            detail="No sensor data found for the selected criteria. Please try different dates or sensors.",
        )
    return [export_row(r) for r in readings]


def _filename(ext: str) -> str:
    return f"batac-soil-data-{utcnow().date().isoformat()}.{ext}"


# ---------- 1) CSV ----------

@router.get("/sensor-data/csv")
def export_csv(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sensor_id: Optional[str] = Query(None, alias="sensorId"),
    monitor: Monitor = Depends(get_monitor),
):
    rows = _query_rows(monitor, start_date, end_date, sensor_id)

    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_COLUMNS, quoting=csv.QUOTE_ALL)
    writer.writeheader()
    writer.writerows(rows)
    output.seek(0)

    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{_filename("csv")}"'},
    )


# ---------- 2) JSON ----------

@router.get("/sensor-data/json")
def export_json(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sensor_id: Optional[str] = Query(None, alias="sensorId"),
    monitor: Monitor = Depends(get_monitor),
):
    rows = _query_rows(monitor, start_date, end_date, sensor_id)

    return JSONResponse(
        content={
            "metadata": {
                "exportedAt": utcnow().isoformat(),
                "recordCount": len(rows),
                "dateRange": {
                    "start": start_date.isoformat() if start_date else "All",
                    "end": end_date.isoformat() if end_date else "All",
                },
                "sensor": sensor_id or "All",
            },
            "data": rows,
        },
        headers={"Content-Disposition": f'attachment; filename="{_filename("json")}"'},
    )


# ---------- 3) PDF ----------

@router.get("/sensor-data/pdf")
def export_pdf(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    sensor_id: Optional[str] = Query(None, alias="sensorId"),
    monitor: Monitor = Depends(get_monitor),
):
    rows = _query_rows(monitor, start_date, end_date, sensor_id)

    buffer = BytesIO()
    pagesize = landscape(A4)
    c = canvas.Canvas(buffer, pagesize=pagesize)
    width, height = pagesize

    y = height - 50

    # Header
    c.setFont("Helvetica-Bold", 16)
    c.drawString(40, y, "Batac Soil Monitoring - Sensor Data")
    y -= 22
    c.setFont("Helvetica", 10)
    c.drawString(
        40, y,
        f"Period: {start_date or 'All'}  to  {end_date or 'All'}    "
        f"Sensor: {sensor_id or 'All'}    Records: {len(rows)}",
    )
    y -= 25

    columns = [
        ("Timestamp", 40), ("Sensor_ID", 180), ("Location", 250),
        ("Soil_Moisture", 350), ("Temperature", 420), ("Humidity", 490),
        ("pH_Level", 550), ("Battery_Level", 610), ("Nitrogen", 680), ("Potassium", 740),
    ]

    def draw_header(y_pos):
        c.setFont("Helvetica-Bold", 8)
        for label, x in columns:
            c.drawString(x, y_pos, label)
        c.setFont("Helvetica", 8)
        return y_pos - 14

    y = draw_header(y)
    for row in rows:
        if y < 40:
            c.showPage()
            y = draw_header(height - 50)
        for key, x in columns:
            value = row[key]
            if key == "Timestamp":
                value = value[:19].replace("T", " ")
            c.drawString(x, y, str(value))
        y -= 12

    c.showPage()
    c.save()
    buffer.seek(0)

    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{_filename("pdf")}"'},
    )
