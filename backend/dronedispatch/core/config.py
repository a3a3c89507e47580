from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Drone Dispatch API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api/v1"

    DATABASE_URL: str = "sqlite:///./drones.db"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # Battery audit task, seconds between passes
    BATTERY_LOG_INTERVAL: int = 240
    BATTERY_AUDIT_ENABLED: bool = True

    ENVIRONMENT: str = "development"
    LOG_LEVEL: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
