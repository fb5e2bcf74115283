# app/core/config.py

import os
from dotenv import load_dotenv
from app.utils.logger import get_logger

logger = get_logger(__name__)

load_dotenv()


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s environment variable, %s set to %d", key, key, default)
        return default


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_port(raw: str | None, default: int) -> int:
    # Accepts both "8080" and ":8080"
    if not raw:
        return default
    try:
        return int(raw.rsplit(":", 1)[-1])
    except ValueError:
        logger.warning("Invalid APP_PORT environment variable, APP_PORT set to %d", default)
        return default


# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV", "development")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

APP_NAME = "Coupon Claim Service"
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = _parse_port(os.getenv("APP_PORT"), 8080)
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# =====================================================
# LOGGING
# =====================================================
LOG_PATH = os.getenv("LOG_PATH") or None
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if APP_ENV == "development" else "INFO").upper()

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE", "postgres")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

DB_USERNAME = os.getenv("DB_USERNAME", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = _env_int("DB_PORT", 5432)
DB_NAME = os.getenv("DB_NAME", "coupons")
SQLITE_PATH = os.getenv("SQLITE_PATH", "./coupons.db")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL") or (
        f"postgresql+asyncpg://{DB_USERNAME}:{DB_PASSWORD}"
        f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
    )

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite+aiosqlite:///{SQLITE_PATH}"

# ---- Pool tuning ----
DB_POOL_MIN_SIZE = _env_int("DB_POOL_MIN_SIZE", 2)
DB_POOL_MAX_SIZE = _env_int("DB_POOL_MAX_SIZE", 10)
if DB_POOL_MIN_SIZE < 1 or DB_POOL_MAX_SIZE < DB_POOL_MIN_SIZE:
    raise ValueError("DB_POOL_MAX_SIZE must be >= DB_POOL_MIN_SIZE >= 1")

DB_POOL_MAX_LIFETIME = _env_int("DB_POOL_MAX_LIFETIME", 60 * 60)
DB_POOL_MAX_IDLE = _env_int("DB_POOL_MAX_IDLE", 30 * 60)
DB_POOL_TIMEOUT = _env_int("DB_POOL_TIMEOUT", 30)
DB_ECHO_POOL = _env_bool("DB_ECHO_POOL", False)

# Upper bound for a single store operation, including waiting on row locks
DB_OPERATION_TIMEOUT = _env_int("DB_OPERATION_TIMEOUT", 10)

# ---- SSL ----
DB_SSL = _env_bool("DB_SSL", False)
DB_SSL_VERIFY = _env_bool("DB_SSL_VERIFY", True)
if DB_SSL and IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# ---- Schema ----
DB_AUTO_CREATE = _env_bool("DB_AUTO_CREATE", APP_ENV == "development")
