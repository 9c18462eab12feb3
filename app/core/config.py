from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import List, Optional

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    AUTO_CREATE_TABLES: bool = True

    # Mail transport
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_SSL: bool = False  # True for port 465, STARTTLS otherwise
    SMTP_TIMEOUT_SECONDS: int = 15
    FROM_EMAIL: Optional[str] = None

    EMAIL_MAX_ATTEMPTS: int = 3
    EMAIL_RETRY_MIN_SECONDS: float = 1.0
    EMAIL_RETRY_MAX_SECONDS: float = 10.0

    # Share links point here when set, otherwise at the request host
    FRONTEND_BASE_URL: Optional[str] = None

    # Redis backed rate limiting
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100

    TRACKER_ID_MAX_ATTEMPTS: int = 10

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "https://wertigo.netlify.app",
    ]

    PROJECT_NAME: str = "WerTigo API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Travel planner backend: trips, trackers, reviews and tickets"
    APP_NAME: str = "WerTigo"

    PASSWORD_MIN_LENGTH: int = 8

    class Config:
        env_file = ".env"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def sender_email(self) -> str:
        return self.FROM_EMAIL or self.SMTP_USER


settings = Settings()
