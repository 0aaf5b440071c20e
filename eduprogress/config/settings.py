"""
Runtime Settings

Centralized configuration for the backend.
All settings are loaded from environment variables (optionally via .env).
"""
import os

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on garbage."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """
    Settings for the application.

    To add a new setting:
    1. Add it here as a class attribute
    2. Load it from an environment variable
    3. Read it through `Settings.<NAME>` in your code
    """

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./eduprogress.db")
    SQL_ECHO: bool = get_bool_env("SQL_ECHO", False)

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Detailed progress: how many recent lesson/submission rows to return
    RECENT_ACTIVITY_LIMIT: int = get_int_env("RECENT_ACTIVITY_LIMIT", 10)

    # Grading feedback is truncated to this many characters
    FEEDBACK_MAX_LENGTH: int = get_int_env("FEEDBACK_MAX_LENGTH", 5000)

    @classmethod
    def to_dict(cls) -> dict:
        """Non-secret settings, for diagnostics."""
        return {
            "sql_echo": cls.SQL_ECHO,
            "log_level": cls.LOG_LEVEL,
            "recent_activity_limit": cls.RECENT_ACTIVITY_LIMIT,
            "feedback_max_length": cls.FEEDBACK_MAX_LENGTH,
            "database_backend": cls.DATABASE_URL.split(":", 1)[0],
        }
