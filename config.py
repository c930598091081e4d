"""Application configuration loaded from environment variables."""

import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Central configuration for the SolarTech field client."""

    API_BASE_URL: str = os.getenv("API_BASE_URL", "https://solartech-backend-production.up.railway.app/api")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./fieldclient.db")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "15.0"))
    DEV_MODE: bool = _as_bool(os.getenv("DEV_MODE", "false"))
    STORAGE_KEY_PREFIX: str = os.getenv("STORAGE_KEY_PREFIX", "solartech_")
    INTERVENTION_NUMBER_PREFIX: str = os.getenv("INTERVENTION_NUMBER_PREFIX", "INT-2025-")
    DEFAULT_REMINDER_MINUTES: int = int(os.getenv("DEFAULT_REMINDER_MINUTES", "60"))
    REPORT_RECIPIENT: str = os.getenv("REPORT_RECIPIENT", "operation.gbd@gruppo-phoenix.com")
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:8081")


settings = Settings()
