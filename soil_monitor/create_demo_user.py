import logging

from sqlalchemy.orm import sessionmaker

from soil_monitor.core.config import settings
from soil_monitor.core.security import hash_password
from soil_monitor.models.user import User

logger = logging.getLogger(__name__)


def ensure_demo_user(session_factory: sessionmaker, name: str, email: str, password: str) -> bool:
    """Creates the demo account unless it exists. Returns True when created."""
    db = session_factory()
    try:
        if db.query(User).filter(User.email == email).first():
            logger.info("Demo user already exists: %s", email)
            return False

        demo = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role="user",
            active=True,
        )
        db.add(demo)
        db.commit()
        logger.info("Demo user created: %s", email)
        return True
    finally:
        db.close()


if __name__ == "__main__":
    from soil_monitor.db.init_db import init_db
    from soil_monitor.db.session import SessionLocal

    logging.basicConfig(level=logging.INFO)
    init_db()
    ensure_demo_user(
        SessionLocal,
        settings.DEMO_USER_NAME,
        settings.DEMO_USER_EMAIL,
        settings.DEMO_USER_PASSWORD,
    )
