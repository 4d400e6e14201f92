import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from soil_monitor.core.timeutils import utcnow
from soil_monitor.db.base import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
