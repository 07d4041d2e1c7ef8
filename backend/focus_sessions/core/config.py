from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "forcefocus"
    MONGO_SESSIONS_COLLECTION: str = "focus_sessions"
    # serverSelection/connect/socket timeout applied to every store call
    MONGO_TIMEOUT_MS: int = 5000

    JWT_SECRET_KEY: str = "super-secret-key"
    JWT_ALGORITHM: str = "HS256"

    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # "production" switches logs to JSON
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_MESSAGES: bool = True
    LOG_PRINT_USER_ID: bool = True

    # session policy
    DEFAULT_SESSION_TYPE: str = "from_zero"
    MIN_DURATION_SECONDS: int = 1
    MAX_DURATION_SECONDS: int = 60 * 60 * 24
    RECENT_ENDED_WINDOW_SECONDS: int = 30

    CORS_ORIGINS: List[str] = [
        "http://localhost:1420",
        "http://127.0.0.1:1420",
        "http://127.0.0.1:8000",
        "http://localhost:8000",
    ]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
