"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    # Try multiple possible locations for .env file
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # .env (when run from src)
        pathlib.Path.cwd() / ".env",  # .env in current directory
        pathlib.Path.cwd().parent / ".env",  # .env in parent directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


# Configuration constants with defaults
def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "sqlite:///./clinic_scheduler.db"
    )

DATABASE_URL = get_database_url()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Authentication (tokens are issued by the identity service, only verified here)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")


def get_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    """
    Read a setting that must be one of a fixed set of values.

    Raises:
        ValueError: If the variable is set to anything else
    """
    value = os.getenv(name, default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got '{value}'")
    return value


# Conflict search window: "widened" (never misses an overlap) or "fixed" (legacy ±60 minutes)
CONFLICT_WINDOW_MODE = get_choice("CONFLICT_WINDOW_MODE", "widened", ("widened", "fixed"))

# What to do with bed tasks left 'running' in storage after a restart: "pause" or "resume"
TASK_RECOVERY_POLICY = get_choice("TASK_RECOVERY_POLICY", "pause", ("pause", "resume"))

# Countdown cadence
TASK_TICK_SECONDS = int(os.getenv("TASK_TICK_SECONDS", "1"))
TASK_PERSIST_EVERY_TICKS = int(os.getenv("TASK_PERSIST_EVERY_TICKS", "5"))
