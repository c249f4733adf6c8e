import os

from dotenv import load_dotenv

load_dotenv()


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Settings read from the environment (and a local .env file)."""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///backoffice.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret-change-me")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

    TIMEZONE = os.getenv("TIMEZONE", "UTC")
    SCHEDULER_ENABLED = _bool("SCHEDULER_ENABLED", True)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    NOTIFICATION_LIST_LIMIT = int(os.getenv("NOTIFICATION_LIST_LIMIT", "50"))
    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
