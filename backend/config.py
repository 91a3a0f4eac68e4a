"""
Central configuration for the collaboration backend.

All settings loaded from .env file or environment variables.
See .env.example for available options.
"""
import os
from pathlib import Path
from dotenv import load_dotenv
from collab.store import DEFAULT_WELCOME_CONTENT

# Load .env file from backend directory
load_dotenv(Path(__file__).parent / ".env")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Server bind address and port (PORT is honoured for hosting platforms)
HOST = os.getenv("COLLAB_HOST", "0.0.0.0")
_port = os.getenv("COLLAB_PORT") or os.getenv("PORT") or "3000"
try:
    PORT = int(_port)
except ValueError:
    raise ValueError(f"COLLAB_PORT must be an integer, got {_port!r}. See .env.example")

# Allowed CORS origins, comma-separated ("*" allows everything)
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Initial document text of a freshly created session
WELCOME_CONTENT = os.getenv("WELCOME_CONTENT", DEFAULT_WELCOME_CONTENT)

# Drop a session from memory once its last participant leaves.
# Off by default: sessions live until process exit.
EVICT_EMPTY_SESSIONS = _env_bool("EVICT_EMPTY_SESSIONS", False)

# Root logger level, also passed to uvicorn
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()
