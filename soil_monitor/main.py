import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from soil_monitor.api import alerts, auth, export, live, sensor_data
from soil_monitor.core.config import settings
from soil_monitor.core.errors import StoreUnavailable
from soil_monitor.core.mailer import build_mail_sender
from soil_monitor.create_demo_user import ensure_demo_user
from soil_monitor.db.init_db import init_db
from soil_monitor.db.session import SessionLocal
from soil_monitor.services.monitor import Monitor

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Batac Soil Monitoring API")
app.state.mail_sender = build_mail_sender(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(sensor_data.router)
app.include_router(alerts.router)
app.include_router(export.router)
app.include_router(live.router)


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Store unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


@app.get("/api")
def api_banner():
    return {
        "message": "Batac Soil Monitoring API is running!",
        "subscribers": app.state.monitor.channel.subscriber_count,
    }


@app.on_event("startup")
async def on_startup():
    init_db()
    if settings.CREATE_DEMO_USER:
        ensure_demo_user(
            SessionLocal,
            settings.DEMO_USER_NAME,
            settings.DEMO_USER_EMAIL,
            settings.DEMO_USER_PASSWORD,
        )

    # the loop only starts once the schema is in place
    app.state.monitor = Monitor.from_settings(SessionLocal, settings)
    await app.state.monitor.start(settings)


@app.on_event("shutdown")
async def on_shutdown():
    await app.state.monitor.stop()
