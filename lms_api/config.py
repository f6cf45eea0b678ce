"""Application configuration and constants."""
import logging
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_log_level(name: str, default: int) -> int:
    """Parse logging level name (or number) from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    raw = raw.strip()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DB_DIR / 'lms.db'}")

# Logging
LOG_LEVEL = _parse_log_level("LOG_LEVEL", logging.INFO)

# Authentication
SECRET_KEY = os.environ.get(
    "SECRET_KEY",
    "CHANGE_ME_IN_PRODUCTION_USE_openssl_rand_hex_32"
)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _parse_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60)
SESSION_EXTEND_MINUTES = _parse_int_env("SESSION_EXTEND_MINUTES", 60)

# Attempts
ATTEMPT_DEADLINE_GRACE_SECONDS = _parse_int_env("ATTEMPT_DEADLINE_GRACE_SECONDS", 30)
EXPIRED_ATTEMPTS_SWEEP_INTERVAL_SECONDS = _parse_int_env(
    "EXPIRED_ATTEMPTS_SWEEP_INTERVAL_SECONDS", 5 * 60
)
TIMER_TICK_MS = _parse_int_env("TIMER_TICK_MS", 1000)
