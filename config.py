"""Environment-driven settings.

Every value can be overridden with an environment variable (or a .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if not url:
        if os.getenv("RENDER") == "true":
            raise RuntimeError("DATABASE_URL missing on Render; refusing to use SQLite.")
        url = "sqlite:///boostbuddies.db"
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def _is_production() -> bool:
    return bool(os.getenv("RENDER") or os.getenv("FLASK_ENV") == "production")


# Posts need this many qualifying engagements unless the owner asks otherwise.
DEFAULT_LIKES_NEEDED = int(os.getenv("DEFAULT_LIKES_NEEDED", "10"))

LEADERBOARD_DEFAULT_LIMIT = int(os.getenv("LEADERBOARD_DEFAULT_LIMIT", "10"))
POINTS_HISTORY_DEFAULT_LIMIT = int(os.getenv("POINTS_HISTORY_DEFAULT_LIMIT", "50"))
POSTS_DEFAULT_LIMIT = int(os.getenv("POSTS_DEFAULT_LIMIT", "50"))

# Bounded retry for transient storage errors (deadlocks, dropped connections).
ENGAGEMENT_MAX_RETRIES = int(os.getenv("ENGAGEMENT_MAX_RETRIES", "3"))
ENGAGEMENT_RETRY_BACKOFF_MS = int(os.getenv("ENGAGEMENT_RETRY_BACKOFF_MS", "50"))


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or os.getenv("FLASK_SECRET_KEY") or "dev-secret-key-change-me"
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = _is_production()

    # Moderator dashboard key. Falls back to ADMIN_API_KEY for older deployments.
    ADMIN_POSTS_KEY = os.getenv("ADMIN_POSTS_KEY") or os.getenv("ADMIN_API_KEY", "admin123")

    RATELIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URL", "memory://")
    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "1") == "1"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PRODUCTION = _is_production()
