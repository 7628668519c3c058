"""Application configuration and constants."""
import os

from pydantic import BaseModel, Field


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Remote edu service
EDU_API_BASE = os.environ.get("EDU_API_BASE", "http://127.0.0.1:8080/api-edu").rstrip("/")
READ_TIMEOUT_MS = _parse_int_env("READ_TIMEOUT_MS", 8000)
WRITE_TIMEOUT_MS = _parse_int_env("WRITE_TIMEOUT_MS", 12000)

# Authentication
ACCESS_TOKEN = os.environ.get("ACCESS_TOKEN", "")
TOKEN_URL = os.environ.get("TOKEN_URL", "")
TOKEN_CLIENT_ID = os.environ.get("TOKEN_CLIENT_ID", "")
REFRESH_TOKEN = os.environ.get("REFRESH_TOKEN", "")
TOKEN_REFRESH_TIMEOUT_MS = _parse_int_env("TOKEN_REFRESH_TIMEOUT_MS", 5000)
TOKEN_MIN_VALIDITY_SECONDS = _parse_int_env("TOKEN_MIN_VALIDITY_SECONDS", 30)

# Session timing
TICK_INTERVAL_SECONDS = _parse_int_env("TICK_INTERVAL_SECONDS", 1)
RECONCILE_INTERVAL_SECONDS = _parse_int_env("RECONCILE_INTERVAL_SECONDS", 15)
PUSH_INTERVAL_SECONDS = _parse_int_env("PUSH_INTERVAL_SECONDS", 10)
AUTOSAVE_DEBOUNCE_MS = _parse_int_env("AUTOSAVE_DEBOUNCE_MS", 650)
RECONCILE_JITTER_SECONDS = _parse_int_env("RECONCILE_JITTER_SECONDS", 2)
DEFAULT_TIME_LIMIT_SECONDS = _parse_int_env("DEFAULT_TIME_LIMIT_SECONDS", 15 * 60)
DEFAULT_PASS_SCORE = _parse_int_env("DEFAULT_PASS_SCORE", 80)
NOTIFICATION_TTL_SECONDS = _parse_int_env("NOTIFICATION_TTL_SECONDS", 5)
CLOSE_GRACE_SECONDS = _parse_int_env("CLOSE_GRACE_SECONDS", 3)

# Server
HOST = os.environ.get("HOST", "127.0.0.1")
PORT = _parse_int_env("PORT", 8000)
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


class ControllerSettings(BaseModel):
    """Timing knobs for one session controller."""

    tick_interval: float = Field(default=TICK_INTERVAL_SECONDS, gt=0)
    reconcile_interval: float = Field(default=RECONCILE_INTERVAL_SECONDS, gt=0)
    push_interval: float = Field(default=PUSH_INTERVAL_SECONDS, gt=0)
    autosave_debounce: float = Field(default=AUTOSAVE_DEBOUNCE_MS / 1000, ge=0)
    reconcile_jitter_seconds: int = Field(default=RECONCILE_JITTER_SECONDS, ge=0)
    default_time_limit_seconds: int = Field(default=DEFAULT_TIME_LIMIT_SECONDS, gt=0)
    default_pass_score: float = Field(default=DEFAULT_PASS_SCORE, ge=0, le=1000)
    notification_ttl: float = Field(default=NOTIFICATION_TTL_SECONDS, gt=0)
    close_grace: float = Field(default=CLOSE_GRACE_SECONDS, ge=0)
