from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from soil_monitor.core.config import settings


def build_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        # sessions are handed to the threadpool
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
