from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    SECRET_KEY: str = "change-this-please"
    JWT_ISS: str = "wakeup-checkin"
    JWT_AUD: str = "wakeup-checkin-app"
    JWT_EXPIRE_DAYS: int = 30
    DATABASE_URL: str = "sqlite:///./wakeup_checkin.db"
    # "today" for both the daily quote and the leaderboard is taken in this zone
    DEFAULT_TZ: str = "UTC"
    RANKING_LIMIT: int = 50
    FEED_QUEUE_SIZE: int = 16
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"

settings = Settings()
