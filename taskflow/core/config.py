from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./taskflow.db"
    
    # Redis (unread-count cache, disabled when empty)
    REDIS_URL: Optional[str] = None
    UNREAD_COUNT_CACHE_SECONDS: int = 30
    
    # JWT
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    
    # Passwords
    MIN_PASSWORD_LENGTH: int = 8
    RESET_PASSWORD_MIN_LENGTH: int = 6
    
    # Notifications
    NOTIFICATION_TTL_HOURS: int = 6
    REMINDER_INTERVAL_HOURS: int = 3
    NOTIFICATION_LIST_LIMIT: int = 50
    REMINDER_SWEEP_INTERVAL_SECONDS: float = 300.0
    REMINDER_SWEEP_SECRET: Optional[str] = None
    
    # App
    APP_NAME: str = "Taskflow API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"

settings = Settings()
