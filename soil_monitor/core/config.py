from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    DATABASE_URL: str = "sqlite:///./soil_monitor.db"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Ingestion loop
    INGESTION_ENABLED: bool = True
    INGESTION_INTERVAL_SECONDS: float = 5.0
    READING_SOURCE: str = "mock"         # "mock" | "mqtt"

    # Live channel
    LIVE_SNAPSHOT_SIZE: int = 10
    LIVE_QUEUE_SIZE: int = 100

    MQTT_BROKER_HOST: str = "broker.hivemq.com"
    MQTT_BROKER_PORT: int = 1883
    MQTT_TOPIC_ROOT: str = "soil-monitor"
    MQTT_USERNAME: Optional[str] = None
    MQTT_PASSWORD: Optional[str] = None

    # Password reset
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    FRONTEND_URL: str = "http://localhost:3000"
    SMTP_HOST: Optional[str] = None      # unset: reset links are only logged
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    MAIL_FROM: str = "no-reply@batac.gov.ph"

    CREATE_DEMO_USER: bool = True
    DEMO_USER_NAME: str = "Demo User"
    DEMO_USER_EMAIL: str = "demo@batac.gov.ph"
    DEMO_USER_PASSWORD: str = "demo123"

    class Config:
        env_file = ".env"

settings = Settings()
