from pathlib import Path
import os

from dotenv import load_dotenv

# Load environment variables from repo root and the package parent (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")
load_dotenv(Path(__file__).resolve().parent / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tasktracker.db")
SQL_ECHO = _env_bool("SQL_ECHO", False)

_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
CORS_ORIGINS = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE") or None

# Listing /api/tasks without an explicit limit returns at most this many documents.
TASKS_DEFAULT_LIMIT = _env_int("TASKS_DEFAULT_LIMIT", 100)

# Roll back completed saga steps when a later step fails.
SAGA_COMPENSATE = _env_bool("SAGA_COMPENSATE", False)
