from soil_monitor.db.base import Base
from soil_monitor.db.session import engine

# registers every table on Base.metadata
from soil_monitor.models import alert, reading, user  # noqa: F401

def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
