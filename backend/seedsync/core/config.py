from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Seedr Sync"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str = "sqlite:////db/seedsync.db"

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    TIMEZONE: str = "UTC"
    DAILY_SYNC_HOUR: int = 0
    DAILY_SYNC_MINUTE: int = 0

    LOG_LEVEL: str = "INFO"

    # Seedr
    SEEDR_BASE_URL: str = "https://www.seedr.cc"
    SEEDR_PASSWORD_CLIENT_ID: str = "seedr_chrome"
    SEEDR_DEVICE_CLIENT_ID: str = "seedr_xbmc"
    SEEDR_TIMEOUT: float = 30.0
    MAGNET_SETTLE_SECONDS: float = 2.0
    FOLDER_LINKS_LIMIT: int = 10

    # GitHub playlist host
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_REPO_OWNER: Optional[str] = None
    GITHUB_REPO_NAME: Optional[str] = None
    GITHUB_BRANCH: str = "main"
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_RAW_URL: str = "https://raw.githubusercontent.com"

    # Pending chat/device state
    LOGIN_STATE_TTL_SECONDS: int = 600

    # Shared secret the chat bot transport sends as X-Chat-Key
    CHAT_API_KEY: Optional[str] = None

    class Config:
        env_file = ".env"

settings = Settings()
