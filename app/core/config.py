from pathlib import Path
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repo root

ENV_FILE = os.getenv("ENV_FILE", str(BASE_DIR / ".env"))

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILE, extra="ignore")

    APP_ENV: str = "local"
    DATABASE_URL: str = "sqlite:///./preview.db"
    CORS_ORIGINS: str = "*"  # Comma-separated list of allowed origins, or "*" for all
    LOG_LEVEL: str = "INFO"

    API_PREFIX: str = "/api"
    PREVIEW_SESSION_HEADER: str = "X-Preview-Session"
    # When False, a payload that is not a JSON object passes through unchanged
    PREVIEW_REJECT_UNDECODABLE: bool = True
    PREVIEW_MAX_SESSIONS: int = 1000

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list, handling '*' for development"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def api_prefix(self) -> str:
        return "/" + self.API_PREFIX.strip("/")

settings = Settings()
