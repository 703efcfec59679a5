from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from enum import Enum
from pathlib import Path

class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"

class Settings(BaseSettings):
    # Basic Settings
    APP_NAME: str = "Crisp Interview Core"
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "DEBUG"

    # AI Settings
    GEMINI_API_KEY: str | None = None
    AI_MODEL: str = "gemini-2.5-flash-lite"
    QUESTION_COUNT: int = 6

    # Timer
    TIMER_TICK_SECONDS: float = 1.0
    TIMER_WARNING_SECONDS: int = 5
    TIMER_PERSIST_INTERVAL_SECONDS: float = 10.0
    TIMER_AUTOSTART: bool = True

    # Welcome back
    RESUME_PROMPT_DELAY_SECONDS: float = 0.5

    # Persistence
    SESSION_STORE_PATH: Path | None = None
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra='ignore'
    )

@lru_cache
def get_settings() -> Settings:
    return Settings()
