"""Process configuration, read from the environment (and an optional .env file)."""
import os
from typing import NamedTuple

from dotenv import load_dotenv


class Settings(NamedTuple):
    database_url: str
    jwt_secret: str
    jwt_expires_in: int
    log_level: str
    log_json: bool


def _truthy(value: str) -> bool:
    return value.lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./posapp.db"),
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret"),
        jwt_expires_in=int(os.getenv("JWT_EXPIRES_IN", str(60 * 60 * 24))),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_json=_truthy(os.getenv("LOG_JSON", "1")),
    )


state = load_settings()


def set_settings(settings: Settings):
    global state
    state = settings


def get_settings() -> Settings:
    return state
