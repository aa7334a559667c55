from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8000"
    PUSH_URL: str = "ws://localhost:8000/ws"
    API_TOKEN: str = ""

    HTTP_TIMEOUT_SECONDS: float = 10.0
    PUSH_HEARTBEAT_SECONDS: float = 30.0

    READ_RECEIPT_DELAY_SECONDS: float = 1.0
    OPTIMISTIC_FALLBACK_SECONDS: float = 1.5

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = ["*"]

    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "info"

    SEED_DEV_DATA: bool = False

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
